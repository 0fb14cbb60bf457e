# tests/test_main.py
from unittest.mock import MagicMock, patch

import pytest

from softether_installer import main as main_mod
from softether_installer.errors import PrivilegeError, ResolveError
from softether_installer.lifecycle import InstallResult, ServiceState, install_plan

from .conftest import FakeResponse, release_doc


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("softether_installer.main.configure_logging") as configure:
        yield configure


@pytest.fixture
def session():
    s = MagicMock()
    s.get.return_value = FakeResponse(json_data=release_doc())
    return s


@pytest.fixture
def tty(tmp_path):
    def _make(choice):
        p = tmp_path / "tty"
        p.write_text(f"{choice}\n", encoding="utf-8")
        return str(p)

    return _make


@pytest.fixture
def orchestrator_cls():
    with patch("softether_installer.main.LifecycleOrchestrator") as cls:
        yield cls


def test_requires_root(session, tty):
    with patch("softether_installer.main.os.geteuid", return_value=1000):
        with pytest.raises(PrivilegeError):
            main_mod.run(tty_path=tty("1"), session=session)

    session.get.assert_not_called()


def test_exit_choice_does_nothing(session, tty, orchestrator_cls):
    assert main_mod.run(dry_run=True, tty_path=tty("6"), session=session) == 0
    orchestrator_cls.assert_not_called()


def test_uninstall_choice(session, tty, orchestrator_cls):
    assert main_mod.run(dry_run=True, tty_path=tty("5"), session=session) == 0
    orchestrator_cls.return_value.uninstall_all.assert_called_once_with()
    orchestrator_cls.return_value.install_all.assert_not_called()


def test_install_choice_passes_selection(session, tty, orchestrator_cls):
    orchestrator = orchestrator_cls.return_value
    orchestrator.install_all.return_value = InstallResult(
        plan=install_plan(["vpnclient", "vpnserver"]),
        services={
            "vpnclient": ServiceState(active=True, enabled=True),
            "vpnserver": ServiceState(active=True, enabled=True),
        },
    )

    assert main_mod.run(dry_run=True, tty_path=tty("3"), session=session) == 0

    release, selected = orchestrator.install_all.call_args[0]
    assert release.version == "5.02.5187"
    assert selected == ("vpnclient", "vpnserver")
    assert orchestrator_cls.call_args.kwargs["dry_run"] is True


def test_service_failures_exit_non_zero(session, tty, orchestrator_cls, capsys):
    orchestrator_cls.return_value.install_all.return_value = InstallResult(
        plan=install_plan(["vpnbridge"]),
        service_failures={"vpnbridge": "softether-vpnbridge.service: Job failed"},
    )

    assert main_mod.run(dry_run=True, tty_path=tty("4"), session=session) == 1
    assert "Error [service]: vpnbridge" in capsys.readouterr().err


def test_main_prints_categorized_error(capsys):
    with patch("softether_installer.main.run", side_effect=ResolveError("Release metadata has no tag_name")):
        assert main_mod.main([]) == 1

    err = capsys.readouterr().err
    assert err.strip() == "Error [release]: Release metadata has no tag_name"
    assert "Traceback" not in err


def test_main_invalid_choice(session, tty, orchestrator_cls, capsys):
    real_run = main_mod.run

    def run(**kwargs):
        return real_run(tty_path=tty("9"), session=session, **kwargs)

    with patch("softether_installer.main.run", side_effect=run):
        assert main_mod.main(["--dry-run"]) == 1

    assert "Error [input]: Invalid choice: 9" in capsys.readouterr().err
    orchestrator_cls.assert_not_called()


def test_main_passes_cli_options():
    with patch("softether_installer.main.run", return_value=0) as run:
        assert main_mod.main(["--config", "c.yaml", "--log", "x.log", "--dry-run"]) == 0

    run.assert_called_once_with(config_path="c.yaml", log_path="x.log", dry_run=True)


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main_mod.main(["--version"])

    assert excinfo.value.code == 0
    assert capsys.readouterr().out.strip() == "softether-installer 0.1.0"


def test_console_script_delegates_to_installer():
    from ui import cli

    with patch("ui.cli.installer_main", return_value=0) as installer_main:
        assert cli.main(["--dry-run"]) == 0

    installer_main.assert_called_once_with(["--dry-run"])
