"""Dramatiq broker selection for the scheduled actors.

The scheduler process installs its broker before importing
:mod:`tributary.orchestration.actors`. When none is installed, a
``StubBroker`` stands in only for test runs or when
``TRIBUTARY_ALLOW_STUB_BROKER`` is truthy.
"""

from __future__ import annotations

import os
import sys
import threading
import typing as typ

import dramatiq
from dramatiq.brokers.stub import StubBroker

if typ.TYPE_CHECKING:
    import collections.abc as cabc

ALLOW_STUB_ENV = "TRIBUTARY_ALLOW_STUB_BROKER"

_TRUTHY = frozenset({"1", "true", "yes"})
_PYTEST_ENV = ("PYTEST_CURRENT_TEST", "PYTEST_XDIST_WORKER", "PYTEST_ADDOPTS")

_BROKER_LOCK = threading.Lock()


def stub_broker_allowed(
    environ: cabc.Mapping[str, str] | None = None,
    modules: cabc.Container[str] | None = None,
) -> bool:
    """Return ``True`` when a missing broker may be replaced by a stub.

    ``environ`` and ``modules`` default to the running process.
    """
    env = os.environ if environ is None else environ
    loaded = sys.modules if modules is None else modules
    if env.get(ALLOW_STUB_ENV, "").strip().lower() in _TRUTHY:
        return True
    return "pytest" in loaded or any(name in env for name in _PYTEST_ENV)


def _installed_broker() -> dramatiq.Broker | None:
    try:
        return dramatiq.get_broker()
    except (ImportError, LookupError):
        # ImportError: the default RabbitMQ broker needs pika.
        return None


def ensure_broker_configured() -> dramatiq.Broker:
    """Return the process broker, installing a stub where one is allowed.

    Raises
    ------
    RuntimeError
        If no broker is installed and a stub is not allowed.

    """
    with _BROKER_LOCK:
        broker = _installed_broker()
        if broker is not None:
            return broker
        if not stub_broker_allowed():
            msg = (
                "No Dramatiq broker configured; install one before importing "
                f"the actors or set {ALLOW_STUB_ENV}=1"
            )
            raise RuntimeError(msg)
        broker = StubBroker()
        dramatiq.set_broker(broker)
        return broker
