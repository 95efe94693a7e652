from __future__ import annotations

from typing import Any, Mapping

import orjson
import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import Config


def build_session(cfg: Config) -> requests.Session:
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": cfg.http.user_agent,
            "Accept": "application/json",
        }
    )
    return session


def build_retryer(cfg: Config) -> Retrying:
    # Only transport failures are retried; an HTTP error status is an answer.
    return Retrying(
        stop=stop_after_attempt(cfg.http.max_attempts),
        wait=wait_exponential(
            multiplier=cfg.http.backoff_min_seconds,
            min=cfg.http.backoff_min_seconds,
            max=cfg.http.backoff_max_seconds,
        ),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        reraise=True,
    )


def get_json(
    session: requests.Session,
    retryer: Retrying,
    url: str,
    params: Mapping[str, Any],
    timeout: float,
) -> Any:
    """GET ``url`` and decode the body with orjson.

    Raises ``requests.RequestException`` for transport errors and non-2xx
    statuses and ``orjson.JSONDecodeError`` for a body that is not JSON.
    """
    for attempt in retryer:
        with attempt:
            response = session.get(url, params=dict(params), timeout=timeout)
            response.raise_for_status()
            return orjson.loads(response.content)
    raise RuntimeError("retry loop exited without a result")
