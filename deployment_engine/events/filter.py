# deployment_engine/events/filter.py
"""Decides which change notifications can affect convergence."""

from typing import Callable, Dict

from deployment_engine.core.resources import EventType, ResourceKind, WatchEvent


def secret_payload_changed(event: WatchEvent) -> bool:
    if event.old is None:
        return True
    return event.old.data != event.obj.data


def app_deployment_spec_changed(event: WatchEvent) -> bool:
    """Status write-backs bump the version but never the generation."""
    if event.old is None:
        return True
    return (
        event.old.generation != event.obj.generation
        or event.old.spec != event.obj.spec
    )


class ChangeFilter:
    """
    Event-level relevance, dispatched on kind.

    Ownership and secret references are resolved by the router; this
    only drops notifications that cannot change anything.
    """

    def __init__(self):
        self._dispatch: Dict[ResourceKind, Callable[[WatchEvent], bool]] = {
            ResourceKind.APP_DEPLOYMENT: self._app_deployment,
            ResourceKind.SECRET: self._secret,
            ResourceKind.PERSISTENT_VOLUME_CLAIM: self._owned_object,
            ResourceKind.JOB: self._owned_object,
            ResourceKind.DEPLOYMENT: self._owned_object,
            ResourceKind.SERVICE: self._owned_object,
            ResourceKind.POD: self._never,
        }

    def is_relevant(self, event: WatchEvent) -> bool:
        return self._dispatch[event.kind](event)

    def _app_deployment(self, event: WatchEvent) -> bool:
        if event.type == EventType.UPDATED:
            return app_deployment_spec_changed(event)
        return True

    def _secret(self, event: WatchEvent) -> bool:
        if event.type == EventType.UPDATED:
            return secret_payload_changed(event)
        return True

    def _owned_object(self, event: WatchEvent) -> bool:
        return True

    def _never(self, event: WatchEvent) -> bool:
        return False
