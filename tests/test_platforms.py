"""
Tests for per-platform layouts, manifests, signing and packaging commands.
"""
import asyncio
import shlex
from pathlib import Path

import pytest

from conftest import LINUX_SETTINGS, MAC_SETTINGS, WINDOWS_SETTINGS, FakeRunner, make_context
from opkit.config import WindowsSigningConfig, parse_settings
from opkit.errors import ConfigurationError, ExternalProcessError, MissingConfiguration
from opkit.platforms import LinuxPlatform, MacOSPlatform, WindowsPlatform, host_platform
from opkit.platforms.windows import appx_version
from opkit.steps.prepare import resolve_layout
from opkit.utils.process import ProcessResult


async def _ignore(text: str) -> None:
    pass


class TestLayouts:
    @pytest.mark.parametrize(
        "platform, settings_text",
        [
            (MacOSPlatform(), MAC_SETTINGS),
            (LinuxPlatform(), LINUX_SETTINGS),
            (WindowsPlatform(), WINDOWS_SETTINGS),
        ],
    )
    def test_binary_is_inside_package_root(self, tmp_path, platform, settings_text):
        settings = parse_settings(settings_text)
        settings.update(platform.default_settings(settings))
        layout = platform.resolve_layout(settings, tmp_path)
        assert layout.package_root in layout.binary_path.parents

    def test_resolve_layout_touches_nothing(self, tmp_path):
        settings = parse_settings(LINUX_SETTINGS)
        LinuxPlatform().resolve_layout(settings, tmp_path)
        assert list(tmp_path.iterdir()) == []

    def test_macos_bundle(self, tmp_path):
        settings = parse_settings(MAC_SETTINGS)
        layout = MacOSPlatform().resolve_layout(settings, tmp_path)
        assert layout.package_root == tmp_path / "build" / "Foo.app"
        assert layout.binary_path == tmp_path / "build" / "Foo.app" / "Contents" / "MacOS" / "foo"
        assert layout.build_resources_path == Path("build/Foo.app/Contents/Resources")

    def test_linux_package(self, tmp_path):
        settings = parse_settings(LINUX_SETTINGS)
        layout = LinuxPlatform().resolve_layout(settings, tmp_path)
        assert layout.package_name == "foo_1.0-1_amd64"
        assert layout.binary_path == tmp_path / "dist" / "foo_1.0-1_amd64" / "opt" / "foo" / "foo"
        assert layout.build_resources_path == Path("dist/foo_1.0-1_amd64/opt/foo")

    def test_windows_package(self, tmp_path):
        settings = parse_settings(WINDOWS_SETTINGS)
        layout = WindowsPlatform().resolve_layout(settings, tmp_path)
        assert layout.package_name == "foo-1.2"
        assert layout.binary_name == "foo.exe"
        assert layout.bin_dir == layout.package_root
        assert layout.build_resources_path.is_absolute()

    def test_windows_revision_defaults_to_one(self, tmp_path):
        context = make_context(tmp_path, WINDOWS_SETTINGS, WindowsPlatform())
        context = resolve_layout(context)
        assert context.settings["revision"] == "1"
        assert context.settings["win_version"] == "1.2.0.1"
        assert context.settings["win_arch"] == "x64"


class TestSkeleton:
    def test_linux_skeleton_and_derived_keys(self, tmp_path):
        context = resolve_layout(make_context(tmp_path, LINUX_SETTINGS, LinuxPlatform(), debug=False))
        root = context.require_layout().package_root
        for sub in ("DEBIAN", "opt/foo", "usr/share/applications", "usr/share/icons/hicolor/256x256/apps"):
            assert (root / sub).is_dir()
        assert context.settings["linux_executable_path"] == "/opt/foo/foo"
        assert context.settings["linux_icon_path"] == "/usr/share/icons/hicolor/256x256/apps/foo.png"

    def test_skeleton_is_idempotent(self, tmp_path):
        context = make_context(tmp_path, LINUX_SETTINGS, LinuxPlatform())
        first = resolve_layout(context)
        marker = first.require_layout().bin_dir / "asset.txt"
        marker.write_text("keep")
        second = resolve_layout(context)
        assert second.require_layout() == first.require_layout()
        assert marker.read_text() == "keep"

    def test_linux_copies_icon_once(self, tmp_path):
        settings_text = LINUX_SETTINGS + "linux_icon: icon.png\n"
        (tmp_path / "icon.png").write_bytes(b"png")
        context = resolve_layout(make_context(tmp_path, settings_text, LinuxPlatform(), debug=False))
        icon = context.require_layout().package_root / "usr/share/icons/hicolor/256x256/apps/foo.png"
        assert icon.read_bytes() == b"png"

        (tmp_path / "icon.png").write_bytes(b"new")
        resolve_layout(make_context(tmp_path, settings_text, LinuxPlatform(), debug=False))
        assert icon.read_bytes() == b"png"


class TestLinuxPackaging:
    def test_dpkg_deb_targets_output_dir(self, tmp_path):
        context = resolve_layout(make_context(tmp_path, LINUX_SETTINGS, LinuxPlatform(), debug=False))
        runner = FakeRunner()
        asyncio.run(LinuxPlatform().assemble(context, runner, _ignore))

        cmd = runner.commands[-1]
        assert cmd[:3] == ["dpkg-deb", "--build", "--root-owner-group"]
        assert cmd[-1] == str(context.project_dir / "dist")
        link = context.require_layout().package_root / "usr/local/bin/foo"
        assert link.is_symlink()
        assert str(link.readlink()) == "/opt/foo/foo"

    def test_dpkg_failure_forwards_exit_code(self, tmp_path):
        context = resolve_layout(make_context(tmp_path, LINUX_SETTINGS, LinuxPlatform()))
        runner = FakeRunner(lambda cmd: ProcessResult(2, "dpkg-deb: error"))
        with pytest.raises(ExternalProcessError) as exc_info:
            asyncio.run(LinuxPlatform().assemble(context, runner, _ignore))
        assert exc_info.value.exit_code == 2

    def test_linux_cannot_sign(self, tmp_path):
        context = resolve_layout(make_context(tmp_path, LINUX_SETTINGS, LinuxPlatform()))
        with pytest.raises(ConfigurationError):
            asyncio.run(LinuxPlatform().sign(context, FakeRunner(), _ignore))


class TestMacOS:
    def test_sign_command_order(self, tmp_path):
        settings_text = MAC_SETTINGS + "mac_sign_paths: Frameworks/libfoo.dylib; helper\n"
        context = resolve_layout(make_context(tmp_path, settings_text, MacOSPlatform(), debug=False))
        layout = context.require_layout()

        stages = MacOSPlatform().sign_command(context, None).split(" && ")

        assert len(stages) == 4
        assert stages[0].endswith(shlex.quote(str(layout.resources_dir / "Frameworks/libfoo.dylib")))
        assert stages[1].endswith(shlex.quote(str(layout.resources_dir / "helper")))
        assert stages[2].endswith(shlex.quote(str(layout.binary_path)))
        assert stages[3].endswith(shlex.quote(str(layout.package_root)))
        for stage in stages:
            assert stage.startswith("codesign --force --options runtime --timestamp")
            assert "'Developer ID Application: Jane Doe (TEAM123)'" in stage

    def test_sign_command_with_entitlements(self, tmp_path):
        context = resolve_layout(make_context(tmp_path, MAC_SETTINGS, MacOSPlatform()))
        entitlements = tmp_path / "entitlements.plist"
        command = MacOSPlatform().sign_command(context, entitlements)
        assert f"--entitlements {shlex.quote(str(entitlements))}" in command

    def test_sign_requires_identity(self, tmp_path):
        settings_text = MAC_SETTINGS.replace("mac_sign: Jane Doe (TEAM123)\n", "")
        context = resolve_layout(make_context(tmp_path, settings_text, MacOSPlatform()))
        with pytest.raises(ConfigurationError, match="mac_sign"):
            MacOSPlatform().sign_command(context, None)

    def test_sign_failure_is_fatal(self, tmp_path):
        context = resolve_layout(make_context(tmp_path, MAC_SETTINGS, MacOSPlatform()))
        runner = FakeRunner(lambda cmd: ProcessResult(1, "no identity found"))
        with pytest.raises(ExternalProcessError) as exc_info:
            asyncio.run(MacOSPlatform().sign(context, runner, _ignore))
        assert exc_info.value.exit_code == 1

    def test_assemble_uses_ditto(self, tmp_path):
        context = resolve_layout(make_context(tmp_path, MAC_SETTINGS, MacOSPlatform(), debug=False))
        runner = FakeRunner()
        asyncio.run(MacOSPlatform().assemble(context, runner, _ignore))
        cmd = runner.commands[-1]
        assert cmd[0] == "ditto"
        assert "--keepParent" in cmd
        assert cmd[-1] == str(context.project_dir / "build" / "foo.zip")

    def test_app_store_package(self, tmp_path):
        context = resolve_layout(make_context(tmp_path, MAC_SETTINGS, MacOSPlatform(), debug=False))
        runner = FakeRunner()
        path = asyncio.run(MacOSPlatform().bundle_for_store(context, runner, _ignore))
        cmd = runner.commands[-1]
        assert cmd[0] == "productbuild"
        assert "3rd Party Mac Developer Installer: Jane Doe (TEAM123)" in cmd
        assert path == context.project_dir / "build" / "foo.pkg"


class TestWindows:
    @pytest.mark.parametrize(
        "version, revision, expected",
        [
            ("1.0", "1", "1.0.0.1"),
            ("2.3.4", "7", "2.3.4.7"),
            ("3", "1", "3.0.0.1"),
            ("1.0.0-beta", "2", "1.0.0.2"),
        ],
    )
    def test_appx_version(self, version, revision, expected):
        assert appx_version(version, revision) == expected

    def test_sign_requires_signtool(self, tmp_path):
        context = resolve_layout(make_context(tmp_path, WINDOWS_SETTINGS, WindowsPlatform()))
        with pytest.raises(ConfigurationError, match="SIGNTOOL"):
            asyncio.run(WindowsPlatform().sign(context, FakeRunner(), _ignore))

    def test_signtool_command(self, tmp_path):
        context = resolve_layout(
            make_context(
                tmp_path,
                WINDOWS_SETTINGS,
                WindowsPlatform(),
                windows_signing=WindowsSigningConfig(signtool="signtool.exe", password="secret"),
                debug=False,
            )
        )
        runner = FakeRunner()
        asyncio.run(WindowsPlatform().sign(context, runner, _ignore))

        cmd = runner.commands[-1]
        assert cmd[:2] == ["signtool.exe", "sign"]
        assert cmd[cmd.index("/f") + 1] == str(context.project_dir / "cert.pfx")
        assert cmd[cmd.index("/p") + 1] == "secret"
        assert cmd[-1].endswith("foo-1.2.appx")

    def test_signtool_failure_surfaces_output(self, tmp_path):
        context = resolve_layout(
            make_context(
                tmp_path,
                WINDOWS_SETTINGS,
                WindowsPlatform(),
                windows_signing=WindowsSigningConfig(signtool="signtool.exe"),
            )
        )
        seen: list[str] = []

        async def collect(text: str) -> None:
            seen.append(text)

        runner = FakeRunner(lambda cmd: ProcessResult(1, "SignTool Error: bad password"))
        with pytest.raises(ExternalProcessError):
            asyncio.run(WindowsPlatform().sign(context, runner, collect))
        assert "SignTool Error: bad password" in "".join(seen)


class TestHostPlatform:
    @pytest.mark.parametrize(
        "name, expected",
        [("darwin", MacOSPlatform), ("linux", LinuxPlatform), ("win32", WindowsPlatform)],
    )
    def test_selects_strategy(self, name, expected):
        assert isinstance(host_platform(name), expected)

    def test_unknown_platform(self):
        with pytest.raises(ConfigurationError) as exc_info:
            host_platform("sunos5")
        assert exc_info.value.exit_code == 1

    def test_missing_command_key_for_host(self, tmp_path):
        with pytest.raises(MissingConfiguration):
            make_context(tmp_path, WINDOWS_SETTINGS, LinuxPlatform())
