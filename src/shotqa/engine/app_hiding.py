"""ShotQA App Hiding -- AppleScript that clears the desktop before capture.

Generates a System Events script that walks every foreground process and
quits (or hides) it unless it is on the allow-list.  The allow-list always
contains the system essentials, the developer tooling and the test harness
itself, so a screenshot run never quits the process driving it.

Name comparison happens inside an AppleScript ``ignoring case`` block.  Shell
case folding (``do shell script "... | tr ..."``) would spawn one process per
app per screenshot; the linter in this module rejects it.
"""

from __future__ import annotations

import logging
from typing import Iterable

logger = logging.getLogger("shotqa.engine.app_hiding")

# Exact process names that must never be quit.
ALWAYS_EXCLUDED_APPS: frozenset[str] = frozenset({
    "Finder",
    "Dock",
    "SystemUIServer",
    "Terminal",
})

# Substrings: IDE, build/simulator tooling, test runners and the harness.
EXCLUDED_APP_PATTERNS: tuple[str, ...] = (
    "Xcode",
    "xctest",
    "xctrunner",
    "xcodebuild",
    "Simulator",
    "Python",
    "shotqa",
)


def _quote(name: str) -> str:
    """Render *name* as an AppleScript string literal."""
    escaped = name.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class AppHidingScriptGenerator:
    """Builds AppleScript to quit or hide background apps.

    Usage::

        generator = AppHidingScriptGenerator(app_names=["ListAll"])
        script = generator.generate_quit_script(excluded_apps=["Slack"])
    """

    def __init__(
        self,
        always_excluded: Iterable[str] = ALWAYS_EXCLUDED_APPS,
        excluded_patterns: Iterable[str] = EXCLUDED_APP_PATTERNS,
        app_names: Iterable[str] = (),
    ) -> None:
        """
        Args:
            always_excluded: Exact names never touched.
            excluded_patterns: Substrings; any process containing one is skipped.
            app_names: The app under test.  Treated as patterns so that
                ``ListAll`` also protects ``ListAllMac``.
        """
        self._always_excluded = tuple(sorted(set(always_excluded), key=str.lower))
        self._patterns = tuple(excluded_patterns) + tuple(app_names)

    @property
    def always_excluded(self) -> tuple[str, ...]:
        return self._always_excluded

    @property
    def excluded_patterns(self) -> tuple[str, ...]:
        return self._patterns

    # -- Script generation ---------------------------------------------------

    def generate_quit_script(self, excluded_apps: Iterable[str] = ()) -> str:
        """AppleScript that quits every non-excluded foreground app."""
        action = "tell application appName to quit"
        return self._build_script(excluded_apps, action, "quit")

    # Short alias.
    generate = generate_quit_script

    def generate_hide_script(self, excluded_apps: Iterable[str] = ()) -> str:
        """AppleScript that hides (does not quit) every non-excluded foreground app."""
        action = "set visible of process appName to false"
        return self._build_script(excluded_apps, action, "hide")

    def _build_script(self, excluded_apps: Iterable[str], action: str, verb: str) -> str:
        exact = self._exact_names(excluded_apps)
        exact_list = ", ".join(_quote(n) for n in exact)
        pattern_lines = "\n".join(
            f"            if appName contains {_quote(p)} then set shouldSkip to true"
            for p in self._patterns
        )
        logger.debug("Generating %s script: %d exact names, %d patterns", verb, len(exact), len(self._patterns))

        return f"""tell application "System Events"
    set appList to name of every process whose background only is false
    repeat with appItem in appList
        set appName to appItem as text
        set shouldSkip to false

        ignoring case
            if appName is in {{{exact_list}}} then set shouldSkip to true
{pattern_lines}
        end ignoring

        if shouldSkip is false then
            try
                {action}
            on error errMsg
                log "Could not {verb} " & appName & ": " & errMsg
            end try
        end if
    end repeat
end tell
"""

    def _exact_names(self, excluded_apps: Iterable[str]) -> list[str]:
        seen: dict[str, str] = {}
        for name in (*self._always_excluded, *excluded_apps):
            name = name.strip()
            if name:
                seen.setdefault(name.lower(), name)
        return list(seen.values())

    # -- Python-side mirror --------------------------------------------------

    def would_quit(self, app_name: str, excluded_apps: Iterable[str] = ()) -> bool:
        """Mirror of the script's skip logic, for dry runs."""
        name = app_name.lower()
        if name in {n.lower() for n in self._exact_names(excluded_apps)}:
            return False
        return not any(p.lower() in name for p in self._patterns)


def lint_script(script: str) -> list[str]:
    """Return problems with a suppression script (empty list if clean)."""
    errors: list[str] = []

    if "tr '[:upper:]' '[:lower:]'" in script or "tr \"[:upper:]\"" in script:
        errors.append("Script uses tr for case conversion - use AppleScript 'ignoring case'")

    if "do shell script" in script:
        errors.append("Script spawns a shell subprocess - use native AppleScript")

    if "try" not in script or "on error" not in script:
        errors.append("Script missing error handling (try / on error)")

    return errors
