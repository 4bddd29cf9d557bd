"""
Tests for the cms-admin command line.

Each invocation opens and closes its own in-memory database, so a test only
sees what it created within a single command.
"""

from app.cli import build_parser, main


class TestParser:
    def test_subcommands(self):
        args = build_parser().parse_args(["set-password", "--username", "root", "--password", "x"])
        assert args.command == "set-password"
        assert args.username == "root"


class TestCommands:
    def test_init_admin_creates_super_admin(self, capsys):
        code = main(["init-admin", "--username", "root", "--email", "root@example.com", "--password", "rootpass"])

        out = capsys.readouterr().out
        assert code == 0
        assert "Admin created: root" in out
        assert "SUPER ADMINISTRATOR" in out

    def test_init_admin_rejects_weak_password(self, capsys):
        code = main(["init-admin", "--username", "root", "--email", "", "--password", "123"])

        assert code == 1
        assert "Password must be at least 6 characters" in capsys.readouterr().err

    def test_list_admins_on_empty_database(self, capsys):
        assert main(["list-admins"]) == 1
        assert "No admins found" in capsys.readouterr().out

    def test_set_password_for_unknown_admin(self, capsys):
        assert main(["set-password", "--username", "ghost", "--password", "whatever"]) == 1
        assert "Admin not found" in capsys.readouterr().err

    def test_purge_tokens(self, capsys):
        assert main(["purge-tokens"]) == 0
        assert "Removed 0 expired reset tokens" in capsys.readouterr().out
