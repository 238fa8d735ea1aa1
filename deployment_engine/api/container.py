#deployment_engine\api\container.py
from deployment_engine.container import orchestrator, store


def get_store():
    return store


def get_orchestrator():
    return orchestrator
