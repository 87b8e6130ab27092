from __future__ import annotations

from typing import Optional


class SynIconsError(Exception):
    pass


class ConfigError(SynIconsError):
    """No usable cache root; the whole batch is refused."""


class RenderError(SynIconsError):
    def __init__(self, item_name: str, staged_path: str, reason: Optional[str] = None) -> None:
        self.item_name = item_name
        self.staged_path = staged_path
        self.reason = reason
        msg = f"Render produced no file for {item_name!r}: {staged_path}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class CopyError(SynIconsError):
    def __init__(self, source: str, dest: str, stage: str, reason: Optional[str] = None) -> None:
        self.source = source
        self.dest = dest
        self.stage = stage
        self.reason = reason
        super().__init__(f"Copy failed at stage {stage!r}: {source} -> {dest} reason={reason}")
