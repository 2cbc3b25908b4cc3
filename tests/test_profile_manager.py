"""Unit tests for ProfileManager: catalog loading, persistence and profile runs."""

import json

import pytest

from dartshub.constants import (
    APPS_DOWNLOADABLE_FILE,
    APPS_INSTALLABLE_FILE,
    APPS_LOCAL_FILE,
    APPS_OPEN_FILE,
    PROFILES_FILE,
)
from dartshub.errors import ConfigurationError, ProcessLaunchError, ProfileLinkError
from dartshub.profile import Profile, ProfileState
from dartshub.profile_manager import ProfileManager

PLATFORM = "windows-x64"

ALL_FILES = (APPS_DOWNLOADABLE_FILE, APPS_INSTALLABLE_FILE, APPS_LOCAL_FILE, APPS_OPEN_FILE, PROFILES_FILE)


class StubApp:
    """Records run/close calls; optionally fails."""

    def __init__(self, name, custom_name=None, calls=None, run_error=None, close_result=True, close_error=None):
        self.name = name
        self.custom_name = custom_name or name
        self.calls = calls if calls is not None else []
        self.run_error = run_error
        self.close_result = close_result
        self.close_error = close_error

    def run(self, runtime=None):
        self.calls.append((self.name, runtime))
        if self.run_error:
            raise self.run_error
        return True

    def close(self):
        self.calls.append(("close", self.name))
        if self.close_error:
            raise self.close_error
        return self.close_result


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")


class TestLoadCatalog:
    """First start, reload and migration persistence."""

    def test_missing_files_create_defaults(self, manager, catalog_dir):
        profiles = manager.load_apps_and_profiles()
        for f in ALL_FILES:
            assert (catalog_dir / f).is_file()
        names = [a.name for a in manager.get_apps()]
        assert "autodarts-client" in names
        assert "autodarts-caller" in names
        assert "autodarts.io" in names
        assert "custom" in names
        assert [p.name for p in profiles][0] == "autodarts-caller"
        assert len(profiles) == 4

    def test_profile_links_resolved(self, manager):
        manager.load_apps_and_profiles()
        profile = manager.find_profile("autodarts-caller")
        state = profile.apps["autodarts-caller"]
        assert state.app is manager.find_app("autodarts-caller")
        assert state.is_required

    def test_reload_is_byte_identical(self, catalog_dir, bus):
        ProfileManager(catalog_dir, bus, platform_key=PLATFORM).load_apps_and_profiles()
        first = {f: (catalog_dir / f).read_bytes() for f in ALL_FILES}
        ProfileManager(catalog_dir, bus, platform_key=PLATFORM).load_apps_and_profiles()
        second = {f: (catalog_dir / f).read_bytes() for f in ALL_FILES}
        assert first == second

    def test_migrated_records_are_persisted(self, manager, catalog_dir):
        write_json(catalog_dir / APPS_DOWNLOADABLE_FILE, [{
            "name": "autodarts-caller",
            "configuration": {"prefix": "-", "delimiter": " ", "arguments": [
                {"name": "U", "type": "string", "required": True, "value": "me"},
                {"name": "ACC", "type": "bool", "value": "True"},
            ]},
        }])
        manager.load_apps_and_profiles()
        stored = json.loads((catalog_dir / APPS_DOWNLOADABLE_FILE).read_text(encoding="utf-8"))
        caller = next(r for r in stored if r["name"] == "autodarts-caller")
        names = [a["name"] for a in caller["configuration"]["arguments"]]
        assert "AAC" in names
        assert "ACC" not in names
        assert any(r["name"] == "autodarts-wled" for r in stored)
        assert manager.find_app("autodarts-caller").configuration.argument("U").value == "me"

    def test_dangling_profile_link(self, manager, catalog_dir):
        write_json(catalog_dir / PROFILES_FILE, [{"name": "broken", "apps": {"ghost-app": {}}}])
        with pytest.raises(ProfileLinkError) as exc:
            manager.load_apps_and_profiles()
        assert exc.value.profile == "broken"
        assert exc.value.app == "ghost-app"
        assert exc.value.file == PROFILES_FILE

    def test_malformed_json(self, manager, catalog_dir):
        (catalog_dir / APPS_LOCAL_FILE).write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError) as exc:
            manager.load_apps_and_profiles()
        assert exc.value.file == APPS_LOCAL_FILE

    def test_wrong_shape(self, manager, catalog_dir):
        write_json(catalog_dir / APPS_OPEN_FILE, {"name": "not-a-list"})
        with pytest.raises(ConfigurationError):
            manager.load_apps_and_profiles()

    def test_duplicate_app_name(self, manager, catalog_dir):
        write_json(catalog_dir / APPS_LOCAL_FILE, [{"name": "autodarts-caller"}])
        with pytest.raises(ConfigurationError):
            manager.load_apps_and_profiles()

    def test_bus_and_base_path_wired(self, manager, catalog_dir, bus):
        manager.load_apps_and_profiles()
        caller = manager.find_app("autodarts-caller")
        assert caller.bus is bus
        assert caller.download_dir == catalog_dir / "autodarts-caller"

    def test_store_apps_keeps_changes(self, manager, catalog_dir, bus):
        manager.load_apps_and_profiles()
        manager.find_app("autodarts-caller").configuration.argument("U").value = "someone"
        manager.store_apps()
        again = ProfileManager(catalog_dir, bus, platform_key=PLATFORM)
        again.load_apps_and_profiles()
        assert again.find_app("autodarts-caller").configuration.argument("U").value == "someone"

    def test_delete_configuration_file(self, manager, catalog_dir):
        manager.load_apps_and_profiles()
        manager.delete_configuration_file(PROFILES_FILE)
        assert not (catalog_dir / PROFILES_FILE).exists()
        manager.delete_configuration_file(PROFILES_FILE)


class TestRunProfile:
    def _profile(self, *apps, required=()):
        states = {}
        for app in apps:
            state = ProfileState(is_required=app.name in required, tagged_for_start=True)
            state.app = app
            states[app.name] = state
        return Profile("p", states)

    def test_runs_tagged_apps_by_display_name(self, manager):
        calls = []
        b = StubApp("b", "Bravo", calls)
        a = StubApp("a", "alpha", calls)
        c = StubApp("c", "Charlie", calls)
        profile = self._profile(c, b, a)
        profile.apps["c"].tagged_for_start = False
        assert manager.run_profile(profile) is True
        assert [n for n, _ in calls] == ["a", "b"]

    def test_failure_does_not_stop_the_rest(self, manager, recorder):
        calls = []
        bad = StubApp("a", calls=calls, run_error=ProcessLaunchError("a", "boom"))
        good = StubApp("b", calls=calls)
        assert manager.run_profile(self._profile(bad, good)) is False
        assert [n for n, _ in calls] == ["a", "b"]
        assert recorder.of("process_failed") == [(bad, "a: boom")]

    def test_runtime_arguments_passed(self, manager):
        calls = []
        app = StubApp("autodarts-extern", calls=calls)
        profile = self._profile(app)
        profile.apps["autodarts-extern"].runtime_arguments = {"extern_platform": "nakka"}
        manager.run_profile(profile)
        assert calls == [("autodarts-extern", {"extern_platform": "nakka"})]

    def test_none_profile(self, manager):
        assert manager.run_profile(None) is False


class TestCloseApps:
    def test_continues_after_failure(self, manager):
        calls = []
        manager.apps_local = [
            StubApp("a", calls=calls, close_error=OSError("denied")),
            StubApp("b", calls=calls, close_result=False),
            StubApp("c", calls=calls),
        ]
        assert manager.close_apps() == ["a", "b"]
        assert calls == [("close", "a"), ("close", "b"), ("close", "c")]


class TestProfileQueries:
    def test_required_entry_stays_tagged(self, manager):
        manager.load_apps_and_profiles()
        profile = manager.find_profile("autodarts-caller")
        assert manager.set_tagged_for_start(profile, "autodarts-caller", False) is True
        assert manager.set_tagged_for_start(profile, "autodarts-client", True) is True
        assert manager.set_tagged_for_start(profile, "autodarts-client", False) is False

    def test_unknown_entry(self, manager):
        manager.load_apps_and_profiles()
        with pytest.raises(KeyError):
            manager.set_tagged_for_start(manager.get_profiles()[0], "ghost-app", True)

    def test_single_tagged_profile(self, manager):
        manager.load_apps_and_profiles()
        first, second = manager.get_profiles()[:2]
        manager.tag_profile_for_start(first)
        manager.tag_profile_for_start(second)
        assert manager.tagged_profile() is second
        assert [p.is_tagged_for_start for p in manager.get_profiles()].count(True) == 1
        manager.tag_profile_for_start(None)
        assert manager.tagged_profile() is None

    def test_argument_string_is_masked(self, manager):
        manager.load_apps_and_profiles()
        caller = manager.find_app("autodarts-caller")
        for name, value in (("U", "me"), ("P", "hunter2secret"), ("B", "board"), ("M", "/sounds")):
            caller.configuration.argument(name).value = value
        rendered = manager.argument_string(caller)
        assert "-P h********" in rendered
        assert "hunter2secret" not in rendered

    def test_refresh_running_states(self, manager):
        manager.load_apps_and_profiles()
        states = manager.refresh_running_states()
        assert set(states) == {a.name for a in manager.get_apps()}
        assert not any(states.values())
