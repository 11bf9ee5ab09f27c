"""Template CRUD on top of the lock store's template map."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from genlocks.domain.errors import TemplateNotFoundError
from genlocks.domain.model import clone_template, create_template, update_template

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from genlocks.domain.context import ContextProvider
    from genlocks.domain.lock_store import LockStore
    from genlocks.domain.model import PromptTemplate
    from genlocks.domain.ports import PromptStructure

log = logging.getLogger(__name__)


class TemplateManager:
    def __init__(
        self,
        store: LockStore,
        structure: PromptStructure,
        context: ContextProvider | None = None,
    ) -> None:
        self._store = store
        self._structure = structure
        self._context = context

    def _require(self, template_id: str) -> PromptTemplate:
        template = self._store.get_template(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template

    def create_from_current(
        self,
        name: str,
        description: str = "",
        include: Iterable[str] | None = None,
    ) -> PromptTemplate:
        """Snapshot the live prompt structure (optionally only ``include``) as a template."""

        character_name = None
        if self._context is not None:
            character_name = self._context.get_current().character_name
        template = create_template(
            name=name,
            description=description,
            prompts=self._structure.prompts(),
            prompt_order=self._structure.prompt_order(),
            include=include,
            prompt_order_character_id=self._structure.order_character_id(),
            character_name=character_name,
        )
        self._store.save_template(template)
        log.info("Created template %s (%s)", template.name, template.id)
        return template

    def get(self, template_id: str) -> PromptTemplate | None:
        return self._store.get_template(template_id)

    def list_templates(self) -> list[PromptTemplate]:
        return self._store.list_templates()

    def update(self, template_id: str, changes: Mapping[str, object]) -> PromptTemplate:
        updated = update_template(self._require(template_id), changes)
        return self._store.save_template(updated)

    def rename(self, template_id: str, new_name: str) -> PromptTemplate:
        return self.update(template_id, {"name": new_name})

    def clone(self, template_id: str, new_name: str) -> PromptTemplate:
        cloned = clone_template(self._require(template_id), new_name)
        self._store.save_template(cloned)
        log.info("Cloned template %s into %s", template_id, cloned.id)
        return cloned

    def delete(self, template_id: str) -> bool:
        # Locks pointing at a deleted template stay; applying them reports the missing id.
        deleted = self._store.delete_template(template_id)
        if deleted:
            log.info("Deleted template %s", template_id)
        return deleted
