"""
Tests for the command line, the entry point and the plain output UI.
"""
import asyncio
import sys

import pytest

from conftest import LINUX_SETTINGS
from opkit.__main__ import main
from opkit.cli import options_from_args, parse_args, should_use_tui
from opkit.steps.base import StepStatus
from opkit.ui.app import BuildApp
from opkit.ui.simple import SimpleUI
from opkit.ui.timing import StepTimer
from opkit.utils.logging import BuildLogger


class TestParseArgs:
    def test_short_flags(self):
        args = parse_args(["app", "-b", "-c", "-me", "-mn", "-o", "-p", "-r", "-xd"])
        options = options_from_args(args)
        assert args.project_dir == "app"
        assert options.appstore and options.codesign and options.entitlements
        assert options.notarize and options.only_build and options.package and options.run
        assert not options.debug

    def test_long_flags(self):
        args = parse_args(["app", "--package", "--no-debug", "--only-build"])
        options = options_from_args(args)
        assert options.package and options.only_build
        assert not options.debug
        assert not options.codesign

    def test_debug_by_default(self):
        assert options_from_args(parse_args(["app"])).debug

    def test_simple_disables_tui(self):
        assert not should_use_tui(parse_args(["app", "--simple"]))


class TestMain:
    def test_no_arguments_prints_usage(self, capsys):
        assert main([]) == 0
        assert "usage: opkit" in capsys.readouterr().out

    def test_help_exits_zero(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-h"])
        assert exc_info.value.code == 0

    def test_missing_settings_exits_one(self, tmp_path, capsys):
        assert main([str(tmp_path), "--simple"]) == 1
        assert "settings file not found" in capsys.readouterr().err

    def test_missing_key_exits_one(self, tmp_path, capsys):
        (tmp_path / "settings.config").write_text("name: foo\nlinux_cmd: true\nmac_cmd: true\nwin_cmd: x\n")
        assert main([str(tmp_path), "--simple"]) == 1
        assert "'title' key/value is required" in capsys.readouterr().err

    def test_unsupported_host_exits_one(self, tmp_path, capsys, monkeypatch):
        (tmp_path / "settings.config").write_text(LINUX_SETTINGS)
        monkeypatch.setattr(sys, "platform", "sunos5")
        assert main([str(tmp_path), "--simple"]) == 1
        assert "unsupported platform: sunos5" in capsys.readouterr().err


class TestSimpleUI:
    def test_summary_lists_steps(self, tmp_path, capsys):
        with BuildLogger(tmp_path) as logger:
            ui = SimpleUI(logger=logger)
            asyncio.run(ui.log_step(1, 2, "Compiling native binary..."))
            asyncio.run(ui.log_output("\033[32mok\033[0m\n"))
            asyncio.run(ui.update_step_status(1, StepStatus.SUCCESS))
            ui.log_error("boom")
            ui.print_summary(
                [("Compiling native binary...", StepStatus.SUCCESS), ("Packaging the app...", StepStatus.PENDING)],
                success=False,
            )

        out = capsys.readouterr().out
        assert "• [1/2] Compiling native binary..." in out
        assert "[PENDING] [2/2] Packaging the app..." in out
        assert "=== Build Failed ===" in out

        log = logger.log_path.read_text(encoding="utf-8")
        assert "✗ ERROR: boom" in log
        assert "\033" not in log

    def test_unknown_step_number_is_ignored(self):
        ui = SimpleUI()
        asyncio.run(ui.update_step_status(3, StepStatus.FAILED))
        assert ui.step_statuses == []


class TestStepTimer:
    def test_elapsed_is_recorded(self):
        timer = StepTimer()
        timer.start(1)
        elapsed = timer.stop(1)
        assert elapsed is not None and elapsed >= 0
        assert timer.elapsed(1) == elapsed
        assert StepTimer.format(elapsed) == f"+{elapsed}ms"

    def test_never_started(self):
        timer = StepTimer()
        assert timer.stop(2) is None
        assert StepTimer.format(None) == ""


class TestBuildApp:
    def test_summary_is_logged_without_colors(self, tmp_path):
        with BuildLogger(tmp_path) as logger:
            app = BuildApp("Linux, debug", "Foo", ["Compiling native binary..."], logger=logger)
            app.print_summary(
                [("Compiling native binary...", StepStatus.SUCCESS)],
                success=True,
                output_path="/tmp/foo",
                build_description="Linux, debug",
            )

        assert app.build_success
        log = logger.log_path.read_text(encoding="utf-8")
        assert "[SUCCESS] [1/1] Compiling native binary..." in log
        assert "Output: /tmp/foo" in log


def test_ui_package_exports():
    import opkit.ui

    assert opkit.ui.__all__ == ["BuildUI", "SimpleUI"]
    assert not hasattr(opkit.ui, "get_tui_class")
