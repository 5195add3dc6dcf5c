import unittest

from stagedeploy import myutil as h


class MyUtilTest(unittest.TestCase):
    def test_strExpand(self):
        dic = dict(name="felix", server=dict(t=1, n="haha"))
        ss = "haha\n{{name}} {{tt}}is me\n"
        self.assertEqual(h.strExpand(ss, dic), "haha\nfelix is me\n")

        ss = "test\n{{server.t}}-{{server.n}}end\n"
        self.assertEqual(h.strExpand(ss, dic), "test\n1-hahaend\n")

        # path through a string value
        self.assertEqual(h.strExpand("[{{name.x}}][{{server.n.y}}]", dic), "[][]")

    def test_envExpand(self):
        env = dict(HOST="h1")
        self.assertEqual(h.envExpand("ssh ${{HOST}}:${{PORT}}", env), "ssh h1:")

    def test_commandLine(self):
        self.assertEqual(h.commandLine("ls -1", ["/a b"]), "ls -1 '/a b'")
        self.assertEqual(
            h.commandLine("go build", ["./cmd/x"], workdir="/rel", env=dict(V="1.2")),
            "cd /rel && export V=1.2 && go build ./cmd/x",
        )
        self.assertEqual(h.commandLine("ls", workdir="~/my app"), "cd ~/'my app' && ls")

    def test_shortCmd(self):
        h.logLevelSet(0)
        self.assertEqual(len(h.shortCmd("x" * 200)), 103)
        self.assertEqual(h.shortCmd("ls"), "ls")


if __name__ == "__main__":
    unittest.main()
