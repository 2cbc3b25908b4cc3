#===============================================================================
#  Darts_Hub_Core | defaults.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Built-in catalog written on first start: the known companion apps (with
#  their pinned releases per OS / architecture) and four starter profiles.
#  Apps without a build for the current platform are left out.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from .apps import AppDownloadable, AppInstallable, AppLocal, AppOpen
from .argument import Argument, bool_argument, multi_arguments
from .configuration import Configuration
from .download_map import DownloadMap, current_platform_key
from .profile import Profile, ProfileState

_GH = "https://github.com"

# name -> (map, pinned version)
DOWNLOAD_MAPS: Dict[str, Tuple[DownloadMap, str]] = {
    "autodarts-client": (DownloadMap({
        "windows-x64": f"{_GH}/autodarts/releases/releases/download/v***VERSION***/autodarts***VERSION***.windows-amd64.zip",
        "linux-x64": f"{_GH}/autodarts/releases/releases/download/v***VERSION***/autodarts***VERSION***.linux-amd64.tar.gz",
        "linux-arm64": f"{_GH}/autodarts/releases/releases/download/v***VERSION***/autodarts***VERSION***.linux-arm64.tar.gz",
        "linux-arm": f"{_GH}/autodarts/releases/releases/download/v***VERSION***/autodarts***VERSION***.linux-armv7l.tar.gz",
        "mac-x64": f"{_GH}/autodarts/releases/releases/download/v***VERSION***/autodarts***VERSION***.darwin-amd64.tar.gz",
        "mac-arm64": f"{_GH}/autodarts/releases/releases/download/v***VERSION***/autodarts***VERSION***.darwin-arm64.tar.gz",
    }), "0.18.0"),
    "autodarts-caller": (DownloadMap({
        "windows-x64": f"{_GH}/lbormann/autodarts-caller/releases/download/v***VERSION***/autodarts-caller.exe",
        "linux-x64": f"{_GH}/lbormann/autodarts-caller/releases/download/v***VERSION***/autodarts-caller",
        "linux-arm64": f"{_GH}/lbormann/autodarts-caller/releases/download/v***VERSION***/autodarts-caller-arm64",
        "mac-x64": f"{_GH}/lbormann/autodarts-caller/releases/download/v***VERSION***/autodarts-caller-macx64",
        "mac-arm64": f"{_GH}/lbormann/autodarts-caller/releases/download/v***VERSION***/autodarts-caller-mac",
    }), "2.0.14"),
    "autodarts-extern": (DownloadMap({
        "windows-x64": f"{_GH}/lbormann/autodarts-extern/releases/download/v***VERSION***/autodarts-extern.exe",
        "linux-x64": f"{_GH}/lbormann/autodarts-extern/releases/download/v***VERSION***/autodarts-extern",
        "mac-x64": f"{_GH}/lbormann/autodarts-extern/releases/download/v***VERSION***/autodarts-extern-mac",
        "mac-arm64": f"{_GH}/lbormann/autodarts-extern/releases/download/v***VERSION***/autodarts-extern-mac",
    }), "1.5.2"),
    "autodarts-wled": (DownloadMap({
        "windows-x64": f"{_GH}/lbormann/autodarts-wled/releases/download/v***VERSION***/autodarts-wled.exe",
        "linux-x64": f"{_GH}/lbormann/autodarts-wled/releases/download/v***VERSION***/autodarts-wled",
        "linux-arm64": f"{_GH}/lbormann/autodarts-wled/releases/download/v***VERSION***/autodarts-wled-arm64",
        "mac-x64": f"{_GH}/lbormann/autodarts-wled/releases/download/v***VERSION***/autodarts-wled-mac64",
        "mac-arm64": f"{_GH}/lbormann/autodarts-wled/releases/download/v***VERSION***/autodarts-wled-mac",
    }), "1.4.5"),
    "virtual-darts-zoom": (DownloadMap({
        "windows-x64": "https://www.lehmann-bo.de/Downloads/VDZ/Virtual Darts Zoom.zip",
    }), ""),
    "dartboards-client": (DownloadMap({
        "windows-x64": "https://dartboards.online/dboclient_***VERSION***.exe",
    }), "0.8.6"),
    "droid-cam": (DownloadMap({
        "windows-x64": f"{_GH}/dev47apps/windows-releases/releases/download/win-***VERSION***/DroidCam.Setup.***VERSION***.exe",
    }), "6.5.2"),
    "epoc-cam": (DownloadMap({
        "windows-x64": "https://edge.elgato.com/egc/windows/epoccam/EpocCam_Installer64_***VERSION***.exe",
    }), "3_4_0"),
}

EXTERN_CHAT_START = ("Hi, GD! Automated darts-scoring - powered by autodarts.io - "
                     "Enter the community: https://discord.gg/bY5JYKbmvM")
EXTERN_CHAT_END = "Thanks GG, WP!"


def pinned_download_url(name: str, platform_key: Optional[str] = None) -> Optional[str]:
    """Release URL of a built-in app for the platform, or None when there is no build."""
    entry = DOWNLOAD_MAPS.get(name)
    if entry is None:
        return None
    dmap, version = entry
    return dmap.url_for(version, platform_key or current_platform_key())


# ----------------------------
# argument sets
# ----------------------------
def caller_arguments() -> List[Argument]:
    return [
        Argument(name="U", type="string", required=True, name_human="autodarts-username", section="Autodarts"),
        Argument(name="P", type="password", required=True, name_human="autodarts-password", section="Autodarts"),
        Argument(name="B", type="string", required=True, name_human="autodarts-board-id", section="Autodarts"),
        Argument(name="M", type="path", required=True, name_human="path-to-sound-files", section="Media"),
        Argument(name="MS", type="path", name_human="path-to-shared-sound-files", section="Media"),
        Argument(name="V", type="float[0.0..1.0]", name_human="caller-volume", section="Media"),
        Argument(name="C", type="string", name_human="specific-caller", section="Calls"),
        bool_argument("R", "random-caller", "Random"),
        bool_argument("L", "random-caller-each-leg", "Random"),
        bool_argument("CCP", "call-current-player", "Calls"),
        bool_argument("E", "call-every-dart", "Calls"),
        bool_argument("ESF", "call-every-dart-single-files", "Calls"),
        bool_argument("PCC", "possible-checkout-call", "Calls"),
        bool_argument("PCCSF", "possible-checkout-call-single-files", "Calls"),
        Argument(name="A", type="float[0.0..1.0]", name_human="ambient-sounds", section="Calls"),
        bool_argument("AAC", "ambient-sounds-after-calls", "Calls"),
        bool_argument("DL", "downloads", "Downloads"),
        Argument(name="DLL", type="int[0..1000]", name_human="downloads-limit", section="Downloads"),
        Argument(name="DLP", type="path", name_human="downloads-path", section="Downloads"),
        Argument(name="BAV", type="float[0.0..1.0]", name_human="background-audio-volume", section="Calls"),
        Argument(name="HP", type="int", name_human="host-port", section="Service"),
        bool_argument("DEB", "debug", "Service"),
    ]


def extern_arguments() -> List[Argument]:
    return [
        Argument(name="connection", type="string", name_human="Connection", section="Service"),
        Argument(name="browser_path", type="file", required=True, name_human="Path to browser",
                 description="Path to browser. fav. Chrome"),
        Argument(name="autodarts_user", type="string", required=True, name_human="Autodarts-Email", section="Autodarts"),
        Argument(name="autodarts_password", type="password", required=True, name_human="Autodarts-Password",
                 section="Autodarts"),
        Argument(name="autodarts_board_id", type="string", required=True, name_human="Autodarts-Board-ID",
                 section="Autodarts"),
        Argument(name="extern_platform", type="selection[lidarts,nakka,dartboards]", required=True,
                 is_runtime_argument=True),
        Argument(name="time_before_exit", type="int[0..150000]",
                 name_human="Dwel after match end (in milliseconds)", section="Match"),
        Argument(name="lidarts_user", type="string", name_human="Lidarts-Email", section="Lidarts",
                 required_on_argument="extern_platform=lidarts"),
        Argument(name="lidarts_password", type="password", name_human="Lidarts-Password", section="Lidarts",
                 required_on_argument="extern_platform=lidarts"),
        Argument(name="lidarts_skip_dart_modals", type="bool", name_human="Skip dart-modals", section="Lidarts"),
        Argument(name="lidarts_chat_message_start", type="string", name_human="Chat-message on match-start",
                 section="Lidarts", value=EXTERN_CHAT_START),
        Argument(name="lidarts_chat_message_end", type="string", name_human="Chat-message on match-end",
                 section="Lidarts", value=EXTERN_CHAT_END),
        Argument(name="nakka_skip_dart_modals", type="bool", name_human="Skip dart-modals", section="Nakka"),
        Argument(name="dartboards_user", type="string", name_human="Dartboards-Email", section="Dartboards",
                 required_on_argument="extern_platform=dartboards"),
        Argument(name="dartboards_password", type="password", name_human="Dartboards-Password",
                 section="Dartboards", required_on_argument="extern_platform=dartboards"),
        Argument(name="dartboards_skip_dart_modals", type="bool", name_human="Skip dart-modals",
                 section="Dartboards"),
    ]


def wled_arguments() -> List[Argument]:
    args = [
        Argument(name="CON", type="string", name_human="Connection", section="Service"),
        Argument(name="WEPS", type="string", required=True, is_multi=True, name_human="wled-endpoints", section="WLED"),
        Argument(name="DU", type="int[0..1000]", name_human="effects-duration", section="WLED"),
        Argument(name="BSS", type="float[0.0..10.0]", name_human="board-start-stop", section="Autodarts"),
        Argument(name="BRI", type="int[1..255]", name_human="effects-brightness", section="WLED"),
        Argument(name="HFO", type="int[2..170]", name_human="highfinish-on", section="Autodarts"),
        Argument(name="HF", type="string", is_multi=True, name_human="high-finish-effects", section="WLED"),
        Argument(name="IDE", type="string", name_human="idle-effect", section="WLED"),
        Argument(name="G", type="string", is_multi=True, name_human="game-won-effects", section="WLED"),
        Argument(name="M", type="string", is_multi=True, name_human="match-won-effects", section="WLED"),
        Argument(name="B", type="string", is_multi=True, name_human="busted-effects", section="WLED"),
        bool_argument("DEB", "debug", "Service"),
    ]
    args += multi_arguments("S", list(range(0, 181)), "score ", "WLED")
    args += multi_arguments("A", list(range(1, 13)), "area-", "WLED")
    return args


# ----------------------------
# apps
# ----------------------------
def _downloadable(name: str, platform_key: str, **kwargs) -> Optional[AppDownloadable]:
    url = pinned_download_url(name, platform_key)
    if url is None:
        return None
    return AppDownloadable(name, download_url=url, **kwargs)


def _installable(name: str, platform_key: str, **kwargs) -> Optional[AppInstallable]:
    url = pinned_download_url(name, platform_key)
    if url is None:
        return None
    return AppInstallable(name, download_url=url, **kwargs)


def default_downloadable(platform_key: Optional[str] = None) -> List[AppDownloadable]:
    pk = platform_key or current_platform_key()
    apps = [
        _downloadable("autodarts-client", pk,
                      help_url="https://docs.autodarts.io/",
                      description_short="Client for dart recognition with cameras"),
        _downloadable("autodarts-caller", pk,
                      help_url=f"{_GH}/lbormann/autodarts-caller",
                      description_short="calls out thrown points",
                      configuration=Configuration(prefix="-", delimiter=" ", arguments=caller_arguments())),
        _downloadable("autodarts-extern", pk,
                      help_url=f"{_GH}/lbormann/autodarts-extern",
                      description_short="automates dart web platforms with autodarts",
                      configuration=Configuration(prefix="--", delimiter=" ", arguments=extern_arguments())),
        _downloadable("autodarts-wled", pk,
                      help_url=f"{_GH}/lbormann/autodarts-wled",
                      description_short="control wled installations",
                      configuration=Configuration(prefix="-", delimiter=" ", arguments=wled_arguments())),
        _downloadable("virtual-darts-zoom", pk,
                      help_url="https://lehmann-bo.de/?p=28",
                      description_short="zooms webcam image onto the thrown darts",
                      run_as_admin=True),
    ]
    return [a for a in apps if a is not None]


def default_installable(platform_key: Optional[str] = None) -> List[AppInstallable]:
    pk = platform_key or current_platform_key()
    apps = [
        _installable("dartboards-client", pk,
                     help_url="https://dartboards.online/client",
                     description_short="webcam connection client for dartboards.online",
                     executable="dartboardsonlineclient.exe",
                     default_path_executable="~/AppData/Local/Programs/dartboardsonlineclient",
                     starts_after_installation=True),
        _installable("droid-cam", pk,
                     help_url="https://www.dev47apps.com",
                     description_short="uses your android phone/tablet as local camera",
                     executable="DroidCamApp.exe",
                     default_path_executable=r"C:\Program Files (x86)\DroidCam",
                     run_as_admin_install=True),
        _installable("epoc-cam", pk,
                     help_url="https://www.elgato.com/de/epoccam",
                     description_short="uses your iOS phone/tablet as local camera",
                     executable="EpocCamService.exe",
                     default_path_executable=r"C:\Program Files (x86)\Elgato\EpocCam",
                     is_service=True),
    ]
    return [a for a in apps if a is not None]


def default_local() -> List[AppLocal]:
    return [AppLocal("custom", description_short="Starts a program on your file-system")]


def default_open() -> List[AppOpen]:
    return [AppOpen("autodarts.io", description_short="Opens autodart`s web-platform",
                    default_value="https://autodarts.io")]


# ----------------------------
# profiles
# ----------------------------
_EXTERN_PROFILES = (
    ("autodarts-extern: lidarts.org", "lidarts", ()),
    ("autodarts-extern: nakka.com/n01/online", "nakka", ()),
    ("autodarts-extern: dartboards.online", "dartboards", ("dartboards-client",)),
)


def default_profiles(existing_apps: Iterable[str]) -> List[Profile]:
    """Starter profiles; links to apps that are not in existing_apps are dropped."""
    existing = set(existing_apps)

    def build(name: str, links: List[Tuple[str, ProfileState]]) -> Profile:
        return Profile(name, {app: state for app, state in links if app in existing})

    profiles = [build("autodarts-caller", [
        ("autodarts-client", ProfileState()),
        ("autodarts.io", ProfileState()),
        ("autodarts-caller", ProfileState(is_required=True)),
        ("autodarts-wled", ProfileState()),
        ("custom", ProfileState()),
    ])]

    for name, platform, extra in _EXTERN_PROFILES:
        links = [
            ("autodarts-client", ProfileState()),
            ("autodarts.io", ProfileState()),
            ("autodarts-caller", ProfileState(is_required=True)),
            ("autodarts-wled", ProfileState()),
            ("autodarts-extern", ProfileState(is_required=True,
                                              runtime_arguments={"extern_platform": platform})),
            ("virtual-darts-zoom", ProfileState()),
        ]
        links += [(app, ProfileState()) for app in extra]
        links += [
            ("droid-cam", ProfileState()),
            ("epoc-cam", ProfileState()),
            ("custom", ProfileState()),
        ]
        profiles.append(build(name, links))
    return profiles
