"""Cosmetic team naming.

Group names are an optional overlay: an enricher proposes a display name
per group id, and the proposal is applied only when the call succeeds.
Membership is never touched, so a failed call leaves the partition as it
was.
"""

import json
import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from teamsync.models import Group

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TIMEOUT_SECONDS = 30.0

_PROMPT_TEMPLATE = """I have a list of teams and their members.
Please generate a creative, fun, and professional team name for each group.
The names should be suitable for a corporate HR teambuilding event.

Respond with a JSON object of the form
{{"teamNames": [{{"groupId": "<id>", "name": "<team name>"}}]}}
containing one entry per group.

Here are the groups:
{groups}
"""


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------


class NamingError(Exception):
    """Base exception for team-naming errors."""


class NamingNotConfiguredError(NamingError):
    """Raised when no API key is configured for the naming service.

    Set ``TEAMSYNC_LLM_API_KEY`` (or ``OPENAI_API_KEY``) and try again.
    """


class EnrichmentFailureError(NamingError):
    """Raised when the naming service failed or returned no usable names.

    The existing group names are left intact. The caller may retry.
    """


# ---------------------------------------------------------------------------
# Capability interface
# ---------------------------------------------------------------------------


class NameEnricher(Protocol):
    """Proposes display names for a set of groups, keyed by group id."""

    async def __call__(self, groups: Sequence[Group]) -> dict[str, str]: ...


def apply_group_names(groups: Sequence[Group], names: Mapping[str, str]) -> list[Group]:
    """Overlay proposed names onto ``groups``.

    Only groups whose id appears in ``names`` with a non-blank value are
    renamed; every other group keeps its current name. Groups are updated
    in place and also returned.
    """
    for group in groups:
        proposed = names.get(group.id)
        if proposed and proposed.strip():
            group.name = proposed.strip()
    return list(groups)


async def enrich_group_names(groups: Sequence[Group], enricher: NameEnricher) -> list[Group]:
    """Ask ``enricher`` for names and apply them on success.

    Raises:
        EnrichmentFailureError: If the enricher raised, or none of the returned
            names is non-blank and matches a group id.
            ``groups`` is not modified in that case.
    """
    try:
        names = await enricher(groups)
    except EnrichmentFailureError:
        raise
    except NamingError as exc:
        raise EnrichmentFailureError(str(exc)) from exc
    except httpx.HTTPError as exc:
        raise EnrichmentFailureError(f"Team naming request failed: {exc}") from exc

    usable = sum(1 for group in groups if names.get(group.id, "").strip())
    if not usable:
        logger.warning("Naming service returned %d name(s), none usable for %d group(s)", len(names), len(groups))
        raise EnrichmentFailureError("The naming service returned no usable team names.")

    applied = apply_group_names(groups, names)
    logger.info("Applied %d team name(s) to %d group(s)", usable, len(groups))
    return applied


# ---------------------------------------------------------------------------
# OpenAI-compatible implementation
# ---------------------------------------------------------------------------


def _first_non_empty(*values: str | None) -> str | None:
    for value in values:
        if value and value.strip():
            return value.strip()
    return None


@dataclass(frozen=True, slots=True)
class NamingConfig:
    """Connection settings for an OpenAI-compatible chat completions API."""

    api_key: str | None
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> "NamingConfig":
        """Read settings from ``TEAMSYNC_LLM_*`` environment variables."""
        timeout_raw = _first_non_empty(os.environ.get("TEAMSYNC_LLM_TIMEOUT"))
        return cls(
            api_key=_first_non_empty(os.environ.get("TEAMSYNC_LLM_API_KEY"), os.environ.get("OPENAI_API_KEY")),
            base_url=_first_non_empty(os.environ.get("TEAMSYNC_LLM_BASE_URL")) or DEFAULT_BASE_URL,
            model=_first_non_empty(os.environ.get("TEAMSYNC_LLM_MODEL")) or DEFAULT_MODEL,
            timeout=float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT_SECONDS,
        )


def build_prompt(groups: Sequence[Group]) -> str:
    """Describe ``groups`` (ids and member names) for the language model."""
    payload = [{"id": group.id, "members": [member.name for member in group.members]} for group in groups]
    return _PROMPT_TEMPLATE.format(groups=json.dumps(payload, indent=2))


def parse_team_names(content: str) -> dict[str, str]:
    """Extract a ``{group_id: name}`` mapping from the model's JSON reply.

    Malformed entries are skipped.

    Raises:
        EnrichmentFailureError: If ``content`` is not a JSON object.
    """
    try:
        parsed: Any = json.loads(content)
    except json.JSONDecodeError as exc:
        raise EnrichmentFailureError("The naming service returned invalid JSON.") from exc
    if not isinstance(parsed, dict):
        raise EnrichmentFailureError("The naming service returned an unexpected payload.")

    names: dict[str, str] = {}
    items = parsed.get("teamNames")
    if isinstance(items, list):
        for item in items:
            if not isinstance(item, dict):
                continue
            group_id, name = item.get("groupId"), item.get("name")
            if isinstance(group_id, str) and isinstance(name, str):
                names[group_id] = name
    return names


class LLMNameEnricher:
    """:class:`NameEnricher` backed by an OpenAI-compatible chat completions endpoint."""

    def __init__(self, config: NamingConfig | None = None, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._config = config or NamingConfig.from_env()
        self._transport = transport

    async def __call__(self, groups: Sequence[Group]) -> dict[str, str]:
        if not self._config.api_key:
            raise NamingNotConfiguredError("Team naming API key is missing. Please check your configuration.")

        body = {
            "model": self._config.model,
            "messages": [{"role": "user", "content": build_prompt(groups)}],
            "response_format": {"type": "json_object"},
        }
        headers = {"Authorization": f"Bearer {self._config.api_key}"}

        async with httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=self._config.timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.post("/chat/completions", json=body, headers=headers)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                logger.warning("Team naming request to %s failed: %s", self._config.base_url, exc)
                raise

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise EnrichmentFailureError("The naming service returned an unexpected response shape.") from exc

        if not content:
            return {}
        return parse_team_names(content)
