# deployment_engine/rendering/config_renderer.py

"""Renders the application configuration file stored in the config secret."""

from typing import List, Tuple

from deployment_engine.core.models import ConnectionDescriptor, RuntimeConfig


def _format(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def config_options(
    connection: ConnectionDescriptor,
    runtime: RuntimeConfig,
    admin_password: str,
) -> List[Tuple[str, str]]:
    """Return the `[options]` entries in their fixed order."""
    entries = [
        ("admin_passwd", admin_password),
        ("data_dir", runtime.data_dir),
        ("db_host", connection.host),
        ("db_port", connection.port),
        ("db_user", connection.user),
        ("db_password", connection.password),
        ("db_maxconn", connection.max_conn),
        ("db_name", connection.name),
        ("debug_mode", runtime.debug_mode),
        ("without_demo", runtime.without_demo),
        ("proxy_mode", runtime.proxy_mode),
        ("workers", runtime.workers),
        ("limit_memory_soft", runtime.limit_memory_soft),
        ("limit_memory_hard", runtime.limit_memory_hard),
        ("limit_request", runtime.limit_request),
        ("limit_time_cpu", runtime.limit_time_cpu),
        ("limit_time_real", runtime.limit_time_real),
    ]
    return [(key, _format(value)) for key, value in entries]


def render_config(
    connection: ConnectionDescriptor,
    runtime: RuntimeConfig,
    admin_password: str,
) -> str:
    """
    Render the configuration document.

    Identical inputs give byte-identical output.
    The result contains credentials and must never be logged.
    """
    lines = ["[options]"]
    lines.extend(f"{key} = {value}" for key, value in config_options(connection, runtime, admin_password))
    return "\n".join(lines) + "\n"
