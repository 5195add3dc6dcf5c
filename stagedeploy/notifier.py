import requests

from .myutil import lld, lle


class Notifier:
    """
    reports the end of a run. failures here never fail the run.
    """

    def notify(self, result):
        raise NotImplementedError


class NullNotifier(Notifier):
    def notify(self, result):
        lld("notify: no notifier is configured")


class SlackNotifier(Notifier):
    def __init__(
        self,
        webhook,
        channel=None,
        application="",
        thumbUrl=None,
        footerIcon=None,
        timeout=10,
        session=None,
    ):
        self.webhook = webhook
        self.channel = channel
        self.application = application
        self.thumbUrl = thumbUrl
        self.footerIcon = footerIcon
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    def payload(self, result):
        rev = result.revision
        stage = result.stage
        status = "succeeded" if result.ok else "failed"

        title = f"Deploy of {self.application} to {stage.name} {status}"
        fields = [
            dict(title="Stage", value=stage.name, short=True),
            dict(title="Branch", value=rev.branch, short=True),
            dict(title="Revision", value=rev.commit[:7], short=True),
            dict(title="Release", value=result.releaseName, short=True),
        ]
        for it in result.results:
            ss = it.status if it.error is None else f"{it.status} - {it.error}"
            fields.append(dict(title=it.target.name, value=ss, short=False))

        attachment = dict(
            fallback=title,
            color="good" if result.ok else "danger",
            title=title,
            fields=fields,
            mrkdwn_in=["text", "fields"],
        )
        if stage.publicUrl:
            attachment["title_link"] = stage.publicUrl
        if self.thumbUrl:
            attachment["thumb_url"] = self.thumbUrl
        if self.footerIcon:
            attachment["footer_icon"] = self.footerIcon
            attachment["footer"] = self.application

        body = dict(username="stagedeploy", attachments=[attachment])
        if self.channel:
            body["channel"] = self.channel
        return body

    def notify(self, result):
        res = self.session.post(self.webhook, json=self.payload(result), timeout=self.timeout)
        res.raise_for_status()
        lld(f"notify: slack responded {res.status_code}")


def notifyQuietly(notifier, result):
    """
    return: True when the notifier finished without an error
    """
    try:
        notifier.notify(result)
        return True
    except Exception as e:
        lle(f"notify: failed to send the notification - {e}")
        return False


def notifierCreate(config, env):
    slack = config.slack
    if not slack.enabled:
        return NullNotifier()

    webhook = env.get(slack.webhookEnv, "").strip()
    if webhook == "":
        lld("notify: no slack webhook, slack is disabled")
        return NullNotifier()

    return SlackNotifier(
        webhook,
        channel=env.get(slack.channelEnv) or None,
        application=config.application,
        thumbUrl=slack.get("thumbUrl"),
        footerIcon=slack.get("footerIcon"),
    )
