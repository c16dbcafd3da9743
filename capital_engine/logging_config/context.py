"""Run Context.

Binds a run identifier and portfolio identifier to every log line emitted
while a batch of portfolios is being evaluated.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

_run_id_var: ContextVar[str] = ContextVar("run_id", default="")
_portfolio_id_var: ContextVar[str] = ContextVar("portfolio_id", default="")


def generate_run_id() -> str:
    """Generate a short unique run ID."""
    return uuid.uuid4().hex[:12]


def get_context_dict() -> dict:
    """Return the non-empty context values for log enrichment."""
    ctx = {}
    run_id = _run_id_var.get()
    if run_id:
        ctx["run_id"] = run_id
    portfolio_id = _portfolio_id_var.get()
    if portfolio_id:
        ctx["portfolio_id"] = portfolio_id
    return ctx


@contextmanager
def run_context(
    portfolio_id: str = "",
    run_id: Optional[str] = None,
) -> Iterator[str]:
    """Bind run/portfolio identifiers for the duration of the block.

    Example:
        with run_context(portfolio_id="growth-30") as run_id:
            report = engine.generate_risk_report(allocation, 100_000)
    """
    rid = run_id or generate_run_id()
    run_token = _run_id_var.set(rid)
    portfolio_token = _portfolio_id_var.set(portfolio_id)
    try:
        yield rid
    finally:
        _portfolio_id_var.reset(portfolio_token)
        _run_id_var.reset(run_token)
