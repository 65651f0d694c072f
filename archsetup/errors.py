from __future__ import annotations


class ProvisionError(RuntimeError):
    """Unrecoverable condition; the run stops with exit status 1."""


class BootstrapExhausted(ProvisionError):
    """Every acquisition strategy for a helper tool failed."""

    def __init__(self, tool: str, failures: list[str]):
        self.tool = tool
        self.failures = list(failures)
        detail = "; ".join(self.failures) or "no strategies configured"
        super().__init__(f"Unable to bootstrap {tool}: {detail}")
