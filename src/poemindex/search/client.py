"""Elasticsearch client construction and connectivity checks."""

from __future__ import annotations

from typing import Any, Dict

from elasticsearch import Elasticsearch

from ..config.policies import ElasticsearchSettings
from ..errors import ConnectivityError
from ..utils import get_logger

_LOGGER = get_logger(module=__name__)


def build_client(settings: ElasticsearchSettings) -> Elasticsearch:
    """Create a client for the configured cluster; no request is sent yet."""

    kwargs: Dict[str, Any] = {"request_timeout": settings.request_timeout}
    if settings.username:
        kwargs["basic_auth"] = (settings.username, settings.password or "")
    if settings.ca_certs is not None:
        kwargs["ca_certs"] = str(settings.ca_certs)
    return Elasticsearch(settings.url, **kwargs)


def check_connectivity(client: Any) -> Dict[str, Any]:
    """Issue one info request and return the cluster description.

    Any failure, whether refused connection, TLS problem or rejected
    credentials, is reported as :class:`ConnectivityError`.
    """

    try:
        response = client.info()
    except Exception as exc:
        raise ConnectivityError(f"Error getting Elasticsearch info: {exc}") from exc

    info = dict(getattr(response, "body", response) or {})
    version = (info.get("version") or {}).get("number", "unknown")
    _LOGGER.info(
        "Connected to Elasticsearch",
        cluster=info.get("cluster_name", "unknown"),
        version=version,
    )
    return info


__all__ = ["build_client", "check_connectivity"]
