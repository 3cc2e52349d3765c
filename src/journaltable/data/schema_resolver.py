"""Schema resolution from the host's journal state and template source.

The active journal names a template; the template's columns become the
schema's fields. Anything missing along the way (no template source, no
template id, template not found) degrades to the empty schema sentinel
instead of failing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from ..debug_trace import get_logger
from ..models.schema import EMPTY_SCHEMA, Schema, schema_from_template

log = get_logger("schema")


@dataclass(frozen=True)
class Journal:
    """A journal (rendering context) as seen in host state."""

    id: str
    title: str = ""
    template_id: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Journal:
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            template_id=data.get("templateId", data.get("template_id")) or None,
        )


@dataclass(frozen=True)
class JournalState:
    """Snapshot of the host's navigation state."""

    active_journal_id: str | None = None
    journals: tuple[Journal, ...] = field(default_factory=tuple)

    @property
    def active_journal(self) -> Journal | None:
        if self.active_journal_id is None:
            return None
        for journal in self.journals:
            if journal.id == self.active_journal_id:
                return journal
        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> JournalState:
        if not data:
            return cls()
        journals = data.get("journals") or []
        return cls(
            active_journal_id=data.get("activeJournalId", data.get("active_journal_id")),
            journals=tuple(
                j if isinstance(j, Journal) else Journal.from_dict(j)
                for j in journals
                if isinstance(j, (Journal, Mapping))
            ),
        )


class TemplateSource(ABC):
    """Port for the host's journal template registry."""

    @abstractmethod
    async def get_template(self, template_id: str) -> Mapping[str, Any] | None:
        """Return {"id": ..., "columns": [{"key", "label", ...}]} or None."""

    async def list_template_entities(self) -> list[Mapping[str, Any]]:
        """Return available templates ({"id": ...} at minimum)."""
        return []


class HostState(ABC):
    """Port for reading (and optionally updating) host navigation state."""

    @abstractmethod
    def get_state(self) -> JournalState | Mapping[str, Any] | None:
        """Return the current journal state."""

    async def assign_template(self, journal_id: str, template_id: str) -> None:
        """Persist a template assignment for journal_id. Optional."""
        raise NotImplementedError


@dataclass(frozen=True)
class Resolution:
    """Result of SchemaResolver.resolve()."""

    schema: Schema
    journal: Journal | None
    state: JournalState


class SchemaResolver:
    """Resolves the active schema for the current journal.

    A journal without a template gets one auto-assigned: the template with id
    ``default_template_id`` if listed, else the first listed template.
    """

    def __init__(
        self,
        host_state: HostState | None,
        templates: TemplateSource | None,
        default_template_id: str = "test",
    ):
        self._host_state = host_state
        self._templates = templates
        self._default_template_id = default_template_id

    def read_state(self) -> JournalState:
        if self._host_state is None:
            return JournalState()
        state = self._host_state.get_state()
        if isinstance(state, JournalState):
            return state
        return JournalState.from_dict(state)

    async def _pick_default_template(self) -> str | None:
        entities = await self._templates.list_template_entities()
        ids = [str(t["id"]) for t in entities if isinstance(t, Mapping) and t.get("id")]
        if self._default_template_id in ids:
            return self._default_template_id
        return ids[0] if ids else None

    async def _assign_template(self, journal: Journal, template_id: str) -> None:
        """Best-effort persistence of an auto-assigned template."""
        assign = getattr(self._host_state, "assign_template", None)
        if assign is None:
            return
        try:
            await assign(journal.id, template_id)
        except NotImplementedError:
            log.debug("host state cannot persist template assignment")
        except Exception:
            log.warning(
                "Could not persist template %r for journal %r", template_id, journal.id, exc_info=True
            )

    async def resolve(self) -> Resolution:
        """Resolve schema, active journal and state snapshot."""
        state = self.read_state()
        journal = state.active_journal

        if self._templates is None:
            return Resolution(EMPTY_SCHEMA, journal, state)

        template_id = journal.template_id if journal else None

        if journal is not None and not template_id:
            template_id = await self._pick_default_template()
            if template_id:
                log.info("Assigning template %r to journal %r", template_id, journal.id)
                await self._assign_template(journal, template_id)
                journal = replace(journal, template_id=template_id)

        if not template_id:
            return Resolution(EMPTY_SCHEMA, journal, state)

        template = await self._templates.get_template(template_id)
        if template is None:
            log.debug("template %r not found", template_id)
        return Resolution(schema_from_template(template), journal, state)
