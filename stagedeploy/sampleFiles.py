sampleDeploy = """\
# stagedeploy deployment file
application: rango
user: app
roles: [app]

#repoUrl: git@github.com:you/rango.git   # default: DEPLOY_REPO or the local origin
deployTo: /home/{{user}}/{{application}}
keepReleases: 10
defaultBranch: main

linkedFiles: [.env]
linkedDirs: [log]

build:
  manifest: go.mod
  lockFile: go.sum
  package: ./cmd/{{application}}
  versionFile: .go-version
  goenv: user     # user | system | none

dotenvHookCommands: [go]

systemd:
  service: "{{application}}"
  user: true
  action: reload-or-restart

slack:
  enabled: true
  channelEnv: SLACK_CHANNEL
  webhookEnv: SLACK_WEBHOOK
  #thumbUrl: https://example.com/logo.svg
  #footerIcon: https://example.com/icon.png

stages:
  production:
    servers:
      - hostEnv: PRODUCTION_SERVER
        forwardAgent: true
  staging:
    publicUrl: https://staging.example.com/
    buildDomain: staging.example.com
    servers:
      - hostEnv: STAGING_SERVER
"""
