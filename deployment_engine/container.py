#deployment_engine\container.py

"""Dependency injection container - wires all services together."""

from deployment_engine.controller.config import settings
from deployment_engine.controller.controller import Controller
from deployment_engine.core.ownership import OwnershipTable
from deployment_engine.events.router import EventRouter
from deployment_engine.infrastructure.memory.store import InMemoryResourceStore
from deployment_engine.infrastructure.postgres.store import SqlResourceStore
from deployment_engine.orchestrator.reconciler import Orchestrator
from deployment_engine.status.reporter import StatusReporter


# ============================================
# STORE
# ============================================

if settings.store_backend == "memory":
    store = InMemoryResourceStore()
else:
    store = SqlResourceStore()

ownership = OwnershipTable()


# ============================================
# ENGINE
# ============================================

status_reporter = StatusReporter(store)

orchestrator = Orchestrator(
    store=store,
    ownership=ownership,
    reporter=status_reporter,
    requeue_after_error=settings.requeue_after_error_seconds,
    init_job_poll_seconds=settings.init_job_poll_seconds,
    init_job_backoff_limit=settings.init_job_backoff_limit,
)

event_router = EventRouter(store, ownership)


# ============================================
# CONTROLLER
# ============================================

controller = Controller(
    controller_id=settings.controller_id,
    store=store,
    orchestrator=orchestrator,
    router=event_router,
    max_slots=settings.max_concurrent_reconciles,
    poll_interval=settings.poll_interval_seconds,
    resync_period=settings.resync_period_seconds,
    requeue_after_error=settings.requeue_after_error_seconds,
)
