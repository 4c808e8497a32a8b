"""ShotQA Report Generator -- markdown summary of a capture run.

Lists every requested screenshot with its capture method, dimensions, size
and validation verdict, plus a findings table for anything that failed.
"""

from __future__ import annotations

import dataclasses


@dataclasses.dataclass
class Finding:
    """A problem encountered during a capture run."""

    severity: str  # critical, high, medium, low
    category: str  # permission, timeout, script, capture, validation
    description: str
    screenshot: str  # screenshot name the finding belongs to


@dataclasses.dataclass
class ShotReport:
    """Report for a single named screenshot."""

    name: str
    passed: bool
    capture_method: str = "-"  # window, fullscreen
    width: int = 0
    height: int = 0
    byte_size: int = 0
    image_path: str | None = None
    error: str | None = None
    duration_seconds: float = 0.0


@dataclasses.dataclass
class CaptureRun:
    """Complete result of a ShotQA capture run."""

    run_id: str
    app_name: str
    start_time: str
    duration_seconds: float
    shots: list[ShotReport] = dataclasses.field(default_factory=list)
    findings: list[Finding] = dataclasses.field(default_factory=list)
    background_apps: str = "quit"  # quit, hide, skipped

    @property
    def passed(self) -> bool:
        return bool(self.shots) and all(s.passed for s in self.shots)


class CaptureReportGenerator:
    """Generates markdown reports from capture runs."""

    def generate(self, run: CaptureRun) -> str:
        sections = [
            self._header(run),
            self._summary(run),
            self._shots_table(run),
            self._findings_table(run),
        ]
        return "\n\n".join(s for s in sections if s) + "\n"

    def _header(self, r: CaptureRun) -> str:
        verdict = "PASS" if r.passed else "FAIL"
        return (
            f"# ShotQA Capture Report: {r.app_name}\n"
            f"\n"
            f"**Run ID:** {r.run_id}\n"
            f"**Date:** {r.start_time}\n"
            f"**Background apps:** {r.background_apps}\n"
            f"**Verdict:** {verdict}"
        )

    def _summary(self, r: CaptureRun) -> str:
        passed_count = sum(1 for s in r.shots if s.passed)
        window_count = sum(1 for s in r.shots if s.passed and s.capture_method == "window")
        return (
            f"## Summary\n"
            f"- Screenshots: {passed_count}/{len(r.shots)} valid\n"
            f"- Valid window captures: {window_count}\n"
            f"- Duration: {r.duration_seconds:.1f}s"
        )

    def _shots_table(self, r: CaptureRun) -> str:
        if not r.shots:
            return "## Screenshots\n\nNo screenshots captured."
        lines = [
            "## Screenshots",
            "| Name | Method | Size | Bytes | Result | File |",
            "|------|--------|------|-------|--------|------|",
        ]
        for shot in r.shots:
            result_str = "VALID" if shot.passed else "INVALID"
            size = f"{shot.width}x{shot.height}" if shot.width and shot.height else "-"
            size_bytes = _human_bytes(shot.byte_size) if shot.byte_size else "-"
            path = f"`{shot.image_path}`" if shot.image_path else "-"
            lines.append(f"| {shot.name} | {shot.capture_method} | {size} | {size_bytes} | {result_str} | {path} |")
        return "\n".join(lines)

    def _findings_table(self, r: CaptureRun) -> str:
        if not r.findings:
            return "## Findings\n\nNo findings."
        lines = [
            "## Findings",
            "| Severity | Category | Description | Screenshot |",
            "|----------|----------|-------------|------------|",
        ]
        for f in r.findings:
            desc = f.description.replace("\n", " ")
            if len(desc) > 120:
                desc = desc[:117] + "..."
            lines.append(f"| {f.severity} | {f.category} | {desc} | {f.screenshot} |")
        return "\n".join(lines)


def _human_bytes(n: int) -> str:
    size = float(n)
    for unit in ("B", "KB", "MB"):
        if size < 1024 or unit == "MB":
            return f"{size:.0f}{unit}" if unit == "B" else f"{size:.1f}{unit}"
        size /= 1024
    return f"{n}B"
