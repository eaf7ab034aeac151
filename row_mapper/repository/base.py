"""Repository - the data mapper.

Orchestrates create/find/update/delete/save for one source against a storage
backend. Query shaping is delegated to the FinderRegistry, field checks to
the Validator, and storage to the backend. The repository holds no mutable
state across calls: the registry and validator are frozen at construction.

Example:
    posts = Repository(MapperConfig(source="posts", rules={"title": ["not_empty"]}), backend)
    post = posts.create({"title": "Hello"})
    post.save()
    posts.find("all", conditions={"author": "michael"}, order={"created": "DESC"})
    posts.findAllByAuthor("michael")
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from functools import partial
from typing import Any, Generic, TypeVar

from row_mapper.adapters.protocol import StorageBackend
from row_mapper.core.enums import LifecycleEvent
from row_mapper.core.exceptions import (
    BackendError,
    ConfigurationError,
    EntityStateError,
    InvalidOption,
)
from row_mapper.core.finders import FinderRegistry, SourceMeta, parse_dynamic_finder
from row_mapper.core.logging import get_logger
from row_mapper.core.query import QueryDescriptor
from row_mapper.core.validation import Validator
from row_mapper.mapping.collection import Collection
from row_mapper.mapping.entity import Entity
from row_mapper.repository.config import (
    DeleteOptions,
    MapperConfig,
    RemoveOptions,
    SaveOptions,
    UpdateOptions,
    parse_options,
)

logger = get_logger(__name__)

E = TypeVar("E", bound=Entity)

CREATE_EVENT = "create"
UPDATE_EVENT = "update"


class Repository(Generic[E]):
    """Data mapper for one source.

    Args:
        config: Source, key, finders, rules and hooks. Read-only after init.
        backend: Storage backend implementing StorageBackend.
        entity_class: Entity subclass to instantiate.
    """

    def __init__(
        self,
        config: MapperConfig,
        backend: StorageBackend,
        entity_class: type[E] = Entity,  # type: ignore[assignment]
    ) -> None:
        if not isinstance(backend, StorageBackend):
            raise ConfigurationError(f"{type(backend).__name__} does not implement StorageBackend")
        self.config = config
        self.backend = backend
        self.entity_class = entity_class
        self.meta = SourceMeta(source=config.source, key=config.key, title=config.title)

        self.finders = FinderRegistry(config.finders)
        self.finders.freeze()
        self.validator = Validator(config.rules)
        self.validator.freeze()
        self._hooks = {
            event: tuple(config.hooks.get(event.value, ())) for event in LifecycleEvent
        }
        self._log = logger.bind(source=config.source)

    @property
    def key_field(self) -> str:
        return self.config.key

    def __repr__(self) -> str:
        return f"<{type(self).__name__} source={self.config.source!r}>"

    # --- construction ---

    def create(self, data: Mapping[str, Any] | None = None, *, exists: bool = False) -> E:
        """Build an entity without touching storage."""
        return self.entity_class(self, data, exists=exists)

    def _wrap(self, row: Mapping[str, Any]) -> E:
        return self.create(row, exists=True)

    # --- reads ---

    def find(self, finder: str = "all", **options: Any) -> Any:
        """Run a named finder.

        Returns a Collection for ``all`` and collection-style custom finders,
        one Entity or None for ``first``, an int for ``count`` and a dict for
        ``list``. Pass ``transaction`` to read inside an open transaction.

        Raises:
            UnknownFinder: If *finder* is not registered.
            InvalidOption: On unknown or malformed options.
            BackendError: If the backend fails.
        """
        transaction = options.pop("transaction", None)
        descriptor = self.finders.resolve(finder, options, self.meta)
        return self._execute(descriptor, transaction)

    def find_by_key(self, value: Any, **options: Any) -> E | None:
        """Fetch one entity by primary key."""
        conditions = {**options.pop("conditions", {}), self.key_field: value}
        return self.find("first", conditions=conditions, **options)

    def find_dynamic(self, name: str, *values: Any, **options: Any) -> Any:
        """Run a dynamic finder such as ``findAllByAuthor`` with positional values."""
        transaction = options.pop("transaction", None)
        descriptor = self.finders.resolve_dynamic(name, values, options, self.meta)
        return self._execute(descriptor, transaction)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") or parse_dynamic_finder(name) is None:
            raise AttributeError(f"{type(self).__name__} has no attribute '{name}'")
        return partial(self.find_dynamic, name)

    def _execute(self, descriptor: QueryDescriptor, transaction: Any = None) -> Any:
        finder = self.finders.get(descriptor.finder)
        self._log.debug(
            "find",
            finder=descriptor.finder,
            conditions=dict(descriptor.conditions),
            limit=descriptor.limit,
            page=descriptor.page,
        )
        if descriptor.aggregate is not None:
            value = self.backend.execute_aggregate(
                descriptor, descriptor.aggregate, transaction=transaction
            )
            if finder.result is not None:
                return finder.result(value, self.meta)
            return int(value or 0)

        collection = Collection(
            self.backend.execute_query(descriptor, transaction=transaction), self._wrap
        )
        if finder.result is not None:
            return finder.result(collection, self.meta)
        return collection

    # --- validation ---

    def _default_events(self, entity: Entity) -> list[str]:
        return [UPDATE_EVENT if entity.exists else CREATE_EVENT]

    def validates(
        self,
        entity: Entity,
        events: str | Iterable[str] | None = None,
        whitelist: Iterable[str] | None = None,
    ) -> bool:
        """Validate *entity*, store the messages on it and return validity."""
        if events is None:
            events = self._default_events(entity)
        errors = self.validator.validate(entity.data(), events, whitelist)
        entity._set_errors(errors)
        if errors:
            self._log.warning("validation_failed", fields=sorted(errors))
        return not errors

    # --- writes ---

    def _fire(self, event: LifecycleEvent, entity: Entity, options: Any) -> None:
        for hook in self._hooks[event]:
            hook(entity, options)

    def save(self, entity: E, data: Mapping[str, Any] | None = None, **options: Any) -> bool:
        """Validate and persist *entity*.

        Inserts when the entity does not exist yet, otherwise updates its
        modified fields by identity. On validation failure the messages are
        stored on ``entity.errors`` and storage is not touched.

        Options:
            validate: Run the validator (default True).
            events: Validation event tag(s); default "create" or "update".
            whitelist: Only these fields are validated and written.
            callbacks: Fire before/after save hooks (default True).
            transaction: Transaction from ``self.transaction()``.

        Returns:
            True if the backend reported success. A backend failure is
            logged and returns False with the entity left as it was.

        Raises:
            EntityStateError: If the entity was deleted, has no identity,
                or its key was reassigned after loading.
            InvalidOption: On unknown options.
        """
        opts = parse_options(SaveOptions, options)
        if entity.deleted:
            raise EntityStateError("deleted", "save")
        if data:
            entity.set(data)
        if entity.exists and entity.key_changed():
            raise EntityStateError("key changed", "save")

        if opts.validate_:
            events = opts.events or self._default_events(entity)
            if not self.validates(entity, events=events, whitelist=opts.whitelist):
                return False
        else:
            entity._set_errors({})

        if opts.callbacks:
            self._fire(LifecycleEvent.BEFORE_SAVE, entity, opts)

        allowed = set(opts.whitelist) if opts.whitelist is not None else None
        if entity.exists:
            success = self._update_entity(entity, allowed, opts)
        else:
            success = self._insert_entity(entity, allowed, opts)

        if success and opts.callbacks:
            self._fire(LifecycleEvent.AFTER_SAVE, entity, opts)
        return success

    def _insert_entity(self, entity: Entity, allowed: set[str] | None, opts: SaveOptions) -> bool:
        payload = {
            name: value
            for name, value in entity.data().items()
            if allowed is None or name in allowed
        }
        try:
            identity = self.backend.insert(
                self.config.source, payload, transaction=opts.transaction
            )
        except BackendError as e:
            self._log.error("write_failed", operation="insert", error=str(e))
            return False
        entity._assign_identity(self.key_field, identity)
        entity._mark_saved(payload)
        self._log.info("entity_inserted", key=entity.data(self.key_field), fields=list(payload))
        return True

    def _update_entity(self, entity: Entity, allowed: set[str] | None, opts: SaveOptions) -> bool:
        identity = entity.key()
        if identity is None:
            raise EntityStateError("missing identity", "update")
        payload = {
            name: entity.data(name)
            for name in entity.modified
            if name != self.key_field and (allowed is None or name in allowed)
        }
        if not payload:
            self._log.debug("entity_unchanged", key=identity[self.key_field])
            return True

        try:
            success = self.backend.update_by_identity(
                self.config.source, identity, payload, transaction=opts.transaction
            )
        except BackendError as e:
            self._log.error(
                "write_failed", operation="update", key=identity[self.key_field], error=str(e)
            )
            return False
        if success:
            entity._mark_saved(payload)
            self._log.info("entity_updated", key=identity[self.key_field], fields=list(payload))
        return bool(success)

    def update(
        self,
        data: Mapping[str, Any],
        conditions: Mapping[str, Any] | None = None,
        **options: Any,
    ) -> bool:
        """Bulk update every record matching *conditions*.

        The validator is never run: this is the unchecked write path, so
        callers validate separately when they need to.
        """
        opts = parse_options(UpdateOptions, options)
        if not data:
            raise InvalidOption("update needs at least one field to write", option="data")
        descriptor = QueryDescriptor.build({"conditions": conditions}, source=self.config.source)
        if descriptor.is_unscoped:
            self._log.warning("unscoped_update", fields=list(data))
        try:
            success = self.backend.update_by_query(
                descriptor, dict(data), transaction=opts.transaction
            )
        except BackendError as e:
            self._log.error("write_failed", operation="bulk_update", error=str(e))
            return False
        self._log.info("bulk_update", conditions=dict(descriptor.conditions), fields=list(data))
        return bool(success)

    def remove(self, conditions: Mapping[str, Any] | None = None, **options: Any) -> bool:
        """Bulk delete every record matching *conditions*.

        An empty condition set deletes the whole source and is refused unless
        ``confirm_unscoped=True`` is passed.

        Raises:
            InvalidOption: For an unconfirmed unscoped delete or unknown options.
        """
        opts = parse_options(RemoveOptions, options)
        descriptor = QueryDescriptor.build({"conditions": conditions}, source=self.config.source)
        if descriptor.is_unscoped:
            if not opts.confirm_unscoped:
                raise InvalidOption(
                    f"refusing to delete every record in '{self.config.source}' "
                    "without confirm_unscoped=True",
                    option="confirm_unscoped",
                )
            self._log.warning("unscoped_remove")
        try:
            success = self.backend.delete_by_query(descriptor, transaction=opts.transaction)
        except BackendError as e:
            self._log.error("write_failed", operation="bulk_remove", error=str(e))
            return False
        self._log.info("bulk_remove", conditions=dict(descriptor.conditions))
        return bool(success)

    def delete(self, entity: E, **options: Any) -> bool:
        """Delete the storage record behind *entity*.

        Returns False without touching storage when the entity does not
        exist (never saved, or already deleted).
        """
        opts = parse_options(DeleteOptions, options)
        if not entity.exists:
            return False
        identity = entity.key()
        if identity is None:
            raise EntityStateError("missing identity", "delete")

        if opts.callbacks:
            self._fire(LifecycleEvent.BEFORE_DELETE, entity, opts)
        try:
            success = self.backend.delete_by_identity(
                self.config.source, identity, transaction=opts.transaction
            )
        except BackendError as e:
            self._log.error(
                "write_failed", operation="delete", key=identity[self.key_field], error=str(e)
            )
            return False
        if success:
            entity._mark_deleted()
            self._log.info("entity_deleted", key=identity[self.key_field])
            if opts.callbacks:
                self._fire(LifecycleEvent.AFTER_DELETE, entity, opts)
        return bool(success)

    def transaction(self) -> Any:
        """Open a backend transaction to pass as the ``transaction`` option."""
        return self.backend.transaction()

