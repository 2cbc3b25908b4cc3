"""Unit tests for the self-updater."""

import threading
import zipfile

import pytest

from dartshub import updater as updater_module
from dartshub.errors import DartsHubError, OperationCancelled
from dartshub.updater import UpdateState, Updater, app_file_for_platform, update_script_name


@pytest.fixture
def make_updater(tmp_path, bus):
    def build(**kw):
        kw.setdefault("version", "v1.2.6")
        kw.setdefault("platform_key", "linux-x64")
        return Updater(tmp_path, bus, **kw)
    return build


class TestAssetNames:
    @pytest.mark.parametrize("key, expected", [
        ("linux-x64", "darts-hub-linux-X64.zip"),
        ("linux-arm64", "darts-hub-linux-ARM64.zip"),
        ("windows-x86", "darts-hub-windows-X86.zip"),
        ("mac-arm64", "darts-hub-macOS-ARM64.zip"),
    ])
    def test_supported(self, key, expected):
        assert app_file_for_platform(key) == expected

    @pytest.mark.parametrize("key", ["mac-x86", "freebsd-x64"])
    def test_unsupported(self, key):
        assert app_file_for_platform(key) is None

    def test_script_names(self):
        assert update_script_name("windows-x64") == "update.bat"
        assert update_script_name("linux-arm") == "update.sh"
        assert update_script_name("mac-arm64") == "update.sh"


class TestCheckNewVersion:
    def test_new_stable_release(self, make_updater, recorder, monkeypatch):
        monkeypatch.setattr(Updater, "latest_stable", lambda self, cancel=None: "v1.2.7")
        monkeypatch.setattr(Updater, "fetch_changelog", lambda self, cancel=None: "- fixes")
        up = make_updater()
        assert up.check_new_version() == UpdateState.UPDATE_AVAILABLE
        assert recorder.of("new_release_found") == [("v1.2.7", "- fixes")]
        assert up.latest_version == "v1.2.7"

    def test_any_difference_is_newer(self, make_updater, recorder, monkeypatch):
        monkeypatch.setattr(Updater, "latest_stable", lambda self, cancel=None: "v1.2.5")
        monkeypatch.setattr(Updater, "fetch_changelog", lambda self, cancel=None: "")
        assert make_updater().check_new_version() == UpdateState.UPDATE_AVAILABLE

    def test_up_to_date(self, make_updater, recorder, monkeypatch):
        monkeypatch.setattr(Updater, "latest_stable", lambda self, cancel=None: "v1.2.6")
        assert make_updater().check_new_version() == UpdateState.UP_TO_DATE
        assert recorder.of("no_new_release_found") == [("v1.2.6", "")]

    def test_beta_without_prerelease(self, make_updater, recorder, monkeypatch):
        monkeypatch.setattr(Updater, "_get", lambda self, url: FakeResponse([{"tag_name": "v1.2.6"}]))
        assert make_updater(beta_tester=True).check_new_version() == UpdateState.UP_TO_DATE
        assert recorder.of("no_new_release_found") == [("vx.x.x", "No beta releases found.")]

    def test_beta_prerelease(self, make_updater, monkeypatch):
        releases = [{"tag_name": "v1.2.6"}, {"tag_name": "b1.3.0", "prerelease": True}]
        monkeypatch.setattr(Updater, "_get", lambda self, url: FakeResponse(releases, text="beta notes"))
        up = make_updater(beta_tester=True)
        assert up.check_new_version() == UpdateState.UPDATE_AVAILABLE
        assert up.latest_version == "b1.3.0"
        assert up.changelog == "beta notes"

    def test_missing_tag(self, make_updater, recorder, monkeypatch):
        monkeypatch.setattr(Updater, "_get", lambda self, url: FakeResponse({"name": "x"}))
        assert make_updater().check_new_version() == UpdateState.FAILED
        version, message = recorder.of("release_download_failed")[0]
        assert version == "vx.x.x"
        assert message.startswith("Version check failed")

    def test_new_check_cancels_running_one(self, make_updater, monkeypatch):
        seen = []

        def latest(self, cancel=None):
            seen.append(cancel)
            return "v1.2.6"

        monkeypatch.setattr(Updater, "latest_stable", latest)
        up = make_updater()
        up.check_new_version()
        up.check_new_version()
        assert seen[0] is not seen[1]
        assert seen[0].is_set()
        assert not seen[1].is_set()

    def test_replaced_check_is_silent(self, make_updater, recorder, monkeypatch):
        up = make_updater()
        seen = []

        def latest(self, cancel=None):
            seen.append(cancel)
            if len(seen) == 1:
                # a newer check starts while this one is in flight
                up.check_new_version()
                assert cancel.is_set()
                raise OperationCancelled("GitHub API Version Check")
            return "v1.2.6"

        monkeypatch.setattr(Updater, "latest_stable", latest)
        assert up.check_new_version() == UpdateState.UP_TO_DATE
        assert recorder.of("release_download_failed") == []
        assert recorder.of("no_new_release_found") == [("v1.2.6", "")]


class FakeResponse:
    def __init__(self, payload, text=""):
        self._payload = payload
        self.text = text

    def json(self):
        return self._payload


class TestUpdateToNewVersion:
    def _fake_download(self, monkeypatch, files=None):
        def download(url, dest, on_progress=None, cancel=None, **kwargs):
            dest.parent.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(dest, "w") as z:
                for name, data in (files or {"darts-hub": "bin"}).items():
                    z.writestr(name, data)
            if on_progress:
                on_progress(10, 10)
            return dest
        monkeypatch.setattr(updater_module, "download_file", download)

    def test_handoff_then_close(self, make_updater, recorder, monkeypatch, tmp_path):
        self._fake_download(monkeypatch)
        launched = []
        monkeypatch.setattr(Updater, "start_update_script", lambda self: launched.append(self.state))
        closed = []
        up = make_updater(close_callback=lambda: closed.append(True))
        up.latest_version = "v1.2.7"
        up.state = UpdateState.UPDATE_AVAILABLE

        assert up.apply_update(skip_confirmation=True) is True
        assert launched == [UpdateState.HANDOFF_TO_INSTALLER]
        assert closed == [True]
        assert up.state == UpdateState.CLOSING
        assert recorder.of("release_download_started") == [("v1.2.7",)]
        assert recorder.of("release_download_progressed") == [(10, 10)]
        assert recorder.of("release_install_initialized")[0][0] == "v1.2.7"
        staged = tmp_path / "updates"
        assert (staged / "darts-hub").is_file()
        assert not (staged / "darts-hub-linux-X64.zip").exists()

    def test_apply_async_runs_on_worker_thread(self, make_updater, monkeypatch):
        self._fake_download(monkeypatch)
        ran_on = []
        monkeypatch.setattr(Updater, "start_update_script", lambda self: ran_on.append(threading.current_thread()))
        up = make_updater()
        up.latest_version = "v1.2.7"
        up.state = UpdateState.UPDATE_AVAILABLE
        t = up.apply_update_async(skip_confirmation=True)
        t.join(5)
        assert ran_on == [t]
        assert t is not threading.current_thread()
        assert up.state == UpdateState.CLOSING

    def test_declined(self, make_updater):
        up = make_updater()
        up.latest_version = "v1.2.7"
        up.state = UpdateState.UPDATE_AVAILABLE
        assert up.apply_update(confirm=lambda version, changelog: False) is False
        assert up.state == UpdateState.UPDATE_AVAILABLE

    def test_not_available(self, make_updater):
        assert make_updater().apply_update(skip_confirmation=True) is False

    def test_unsupported_platform(self, make_updater, recorder):
        up = make_updater(platform_key="mac-x86")
        up.latest_version = "v1.2.7"
        assert up.update_to_new_version() is False
        assert up.state == UpdateState.FAILED
        assert recorder.of("release_download_failed") == [("v1.2.7", "There are no releases for your specific OS.")]

    def test_missing_script_fails_and_cleans(self, make_updater, recorder, monkeypatch, tmp_path):
        self._fake_download(monkeypatch)
        closed = []
        up = make_updater(close_callback=lambda: closed.append(True))
        up.latest_version = "v1.2.7"
        assert up.update_to_new_version() is False
        assert closed == []
        assert not (tmp_path / "updates").exists()
        assert recorder.of("release_download_failed")[0][1].startswith("There is no update-script")

    def test_start_update_script_sh(self, make_updater, monkeypatch, tmp_path):
        script = tmp_path / "update.sh"
        script.write_text("#!/bin/sh\n")
        spawned = []
        monkeypatch.setattr(updater_module.subprocess, "Popen", lambda cmd, **kw: spawned.append((cmd, kw)))
        make_updater().start_update_script()
        cmd, kw = spawned[0]
        assert cmd == [str(script)]
        assert kw["start_new_session"] is True

    def test_start_update_script_missing(self, make_updater):
        with pytest.raises(DartsHubError):
            make_updater().start_update_script()
