"""Introspection of model types into structural metadata.

For every annotated field of a model class the introspector resolves a
stored name, a converter and a reader/writer pair. Accessors are found in
this order:

1. method names given explicitly on the field marker;
2. the ``get_<field>`` / ``set_<field>`` convention (``is_<field>`` is tried
   first for ``bool`` fields; builders also accept a fluent ``<field>()``);
3. a ``property`` or the plain attribute.

Fields without a marker are mapped on a best-effort basis and skipped when
their accessors cannot be resolved. Fields with a marker are contracts: a
missing accessor raises :class:`NoAccessorMethodError`.
"""

from __future__ import annotations

import dataclasses
import inspect
import logging
import operator
import typing
from collections.abc import Callable
from typing import Any, ClassVar, get_origin, get_type_hints

from datastore_py.config import MapperConfig
from datastore_py.exceptions import (
    MappingError,
    MetadataError,
    NoAccessorMethodError,
    UnsupportedTypeError,
)
from datastore_py.mapping import pydantic_support
from datastore_py.mapping.converters import Converter, ConverterRegistry, unwrap_annotation
from datastore_py.mapping.embedded import EmbeddedObjectConverter
from datastore_py.mapping.indexers import Indexer
from datastore_py.mapping.keys import DatastoreKey
from datastore_py.mapping.metadata import (
    ConstructionStrategy,
    ConstructorMetadata,
    EmbeddableMetadata,
    EmbeddedMetadata,
    EntityMetadata,
    IdentifierMetadata,
    IdentifierType,
    KeyMetadata,
    ParentKeyMetadata,
    PropertyMetadata,
    Reader,
    Writer,
    collect_mapped_names,
)
from datastore_py.mapping.models import (
    Embedded,
    EntityKey,
    FieldMarker,
    Identifier,
    Ignore,
    ParentKey,
    Property,
    Version,
    embeddable_options,
    entity_options,
    field_markers,
    is_embeddable,
)

logger = logging.getLogger(__name__)

_MISSING = object()


def _qualname(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def _attribute_reader(name: str) -> Reader:
    return operator.attrgetter(name)


def _attribute_writer(name: str) -> Writer:
    def write(target: Any, value: Any) -> None:
        setattr(target, name, value)

    return write


def _item_writer(name: str) -> Writer:
    def write(target: Any, value: Any) -> None:
        target[name] = value

    return write


def _method_writer(function: Callable[..., Any]) -> Writer:
    def write(target: Any, value: Any) -> None:
        function(target, value)

    return write


def _is_frozen_dataclass(cls: type) -> bool:
    params = getattr(cls, "__dataclass_params__", None)
    return dataclasses.is_dataclass(cls) and params is not None and params.frozen


class DataclassBuild:
    """
    Build step of dataclasses constructed from collected field values.

    Only ``init`` fields are passed to the constructor; values of
    ``field(init=False)`` members are left to the class. Fields without a
    default must be present in the native entity.

    Example:
        build = DataclassBuild(Point)
        point = build({"x": 1, "y": 2})

    """

    __slots__ = ("_cls", "_init_fields", "_required")

    def __init__(self, cls: type) -> None:
        self._cls = cls
        dc_fields = [f for f in dataclasses.fields(cls) if f.init]
        self._init_fields = frozenset(f.name for f in dc_fields)
        self._required = tuple(
            f.name
            for f in dc_fields
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
        )

    def __call__(self, values: dict[str, Any]) -> Any:
        missing = [name for name in self._required if name not in values]
        if missing:
            raise MappingError(
                f"{self._cls.__qualname__} requires {', '.join(missing)}, "
                f"missing from the native entity"
            )
        return self._cls(**{k: v for k, v in values.items() if k in self._init_fields})

    def __repr__(self) -> str:
        return f"DataclassBuild({self._cls.__name__})"


def _is_assignable(actual: Any, expected: Any) -> bool:
    """Whether values annotated ``actual`` fit a field declared ``expected``."""
    actual = unwrap_annotation(actual)
    expected = unwrap_annotation(expected)
    if actual == expected or expected is Any or actual is Any:
        return True
    actual_origin = get_origin(actual) or actual
    expected_origin = get_origin(expected) or expected
    if isinstance(actual_origin, type) and isinstance(expected_origin, type):
        return issubclass(actual_origin, expected_origin)
    return False


class _Field(typing.NamedTuple):
    name: str
    annotation: Any  # Annotated preserved
    declared_type: Any  # Annotated and Optional stripped
    marker: FieldMarker | None


class Introspector:
    """
    Builds structural metadata for model types.

    One introspector is used per describe call; caching happens in the
    :class:`~datastore_py.mapping.registry.MetadataRegistry`.

    Example:
        introspector = Introspector(default_converters, MapperConfig())
        metadata = introspector.introspect_entity(Person)

    """

    __slots__ = ("_converters", "_config")

    def __init__(self, converters: ConverterRegistry, config: MapperConfig) -> None:
        self._converters = converters
        self._config = config

    # --- Entry points ---

    def introspect_entity(self, entity_type: type) -> EntityMetadata:
        """
        Describe an entity type.

        Raises:
            MetadataError: If the type is not a valid entity

        """
        if not isinstance(entity_type, type):
            raise MetadataError(f"{entity_type!r} is not a class")
        options = entity_options(entity_type)
        kind = options.kind if options is not None else entity_type.__name__
        builder = options.builder if options is not None else None
        constructor = self._constructor_for(entity_type, builder)

        identifier: IdentifierMetadata | None = None
        key: KeyMetadata | None = None
        parent_key: ParentKeyMetadata | None = None
        version: PropertyMetadata | None = None
        properties: list[PropertyMetadata] = []
        embedded: list[EmbeddedMetadata] = []

        for fld in self._fields(entity_type):
            marker = fld.marker
            if isinstance(marker, Identifier):
                if identifier is not None:
                    raise MetadataError(
                        f"Class {_qualname(entity_type)} has more than one Identifier field"
                    )
                identifier = self._identifier(entity_type, constructor, fld, marker)
            elif isinstance(marker, EntityKey):
                if key is not None:
                    raise MetadataError(
                        f"Class {_qualname(entity_type)} has more than one EntityKey field"
                    )
                reader, writer = self._key_accessors(entity_type, constructor, fld, marker)
                key = KeyMetadata(fld.name, reader, writer)
            elif isinstance(marker, ParentKey):
                if parent_key is not None:
                    raise MetadataError(
                        f"Class {_qualname(entity_type)} has more than one ParentKey field"
                    )
                reader, writer = self._key_accessors(entity_type, constructor, fld, marker)
                parent_key = ParentKeyMetadata(fld.name, reader, writer)
            elif isinstance(marker, Version):
                if version is not None:
                    raise MetadataError(
                        f"Class {_qualname(entity_type)} has more than one Version field"
                    )
                version = self._version(entity_type, constructor, fld, marker)
                properties.append(version)
            elif isinstance(marker, Embedded):
                embedded.append(
                    self._embedded(entity_type, constructor, fld, marker, (entity_type,))
                )
            else:
                prop = self._property(entity_type, constructor, fld)
                if prop is not None:
                    properties.append(prop)

        if identifier is None:
            raise MetadataError(f"Class {_qualname(entity_type)} requires an Identifier field")

        self._check_unique_names(entity_type, tuple(properties), tuple(embedded))
        metadata = EntityMetadata(
            entity_type=entity_type,
            kind=kind,
            constructor=constructor,
            identifier=identifier,
            key=key,
            parent_key=parent_key,
            version=version,
            properties=tuple(properties),
            embedded=tuple(embedded),
        )
        logger.debug(
            "Described entity %s: kind=%s, %d properties, %d embedded",
            _qualname(entity_type),
            kind,
            len(metadata.properties),
            len(metadata.embedded),
        )
        return metadata

    def introspect_embeddable(
        self, embeddable_type: type, _stack: tuple[type, ...] = ()
    ) -> EmbeddableMetadata:
        """
        Describe an embeddable type.

        Raises:
            MetadataError: If the type is invalid or embeds itself

        """
        if not isinstance(embeddable_type, type):
            raise MetadataError(f"{embeddable_type!r} is not a class")
        if embeddable_type in _stack:
            cycle = " -> ".join(t.__qualname__ for t in (*_stack, embeddable_type))
            raise MetadataError(f"Cyclic embedding: {cycle}")
        stack = (*_stack, embeddable_type)

        options = embeddable_options(embeddable_type)
        builder = options.builder if options is not None else None
        constructor = self._constructor_for(embeddable_type, builder)

        properties: list[PropertyMetadata] = []
        embedded: list[EmbeddedMetadata] = []
        for fld in self._fields(embeddable_type):
            marker = fld.marker
            if isinstance(marker, (Identifier, EntityKey, ParentKey, Version)):
                raise MetadataError(
                    f"Field {fld.name} in embeddable class {_qualname(embeddable_type)} "
                    f"cannot be declared {type(marker).__name__}"
                )
            if isinstance(marker, Embedded):
                embedded.append(self._embedded(embeddable_type, constructor, fld, marker, stack))
                continue
            prop = self._property(embeddable_type, constructor, fld, stack)
            if prop is not None:
                properties.append(prop)

        self._check_unique_names(embeddable_type, tuple(properties), tuple(embedded))
        return EmbeddableMetadata(
            embeddable_type=embeddable_type,
            constructor=constructor,
            properties=tuple(properties),
            embedded=tuple(embedded),
        )

    # --- Fields ---

    def _fields(self, cls: type) -> list[_Field]:
        """Annotated instance fields of ``cls`` and its bases, bases first."""
        try:
            if pydantic_support.is_pydantic_model(cls):
                hints = pydantic_support.model_type_hints(cls)
            else:
                hints = get_type_hints(cls, include_extras=True)
        except Exception as e:
            raise MetadataError(
                f"Cannot resolve type annotations of class {_qualname(cls)}: {e}"
            ) from e

        fields: list[_Field] = []
        for name, annotation in hints.items():
            if name.startswith("_"):
                continue
            if annotation is ClassVar or get_origin(annotation) is ClassVar:
                continue
            markers = field_markers(annotation)
            if len(markers) > 1:
                raise MetadataError(
                    f"Field {name} in class {_qualname(cls)} has conflicting declarations"
                )
            marker = markers[0] if markers else None
            if isinstance(marker, Ignore):
                continue
            fields.append(_Field(name, annotation, unwrap_annotation(annotation), marker))
        return fields

    def _property(
        self,
        owner: type,
        constructor: ConstructorMetadata,
        fld: _Field,
        stack: tuple[type, ...] = (),
    ) -> PropertyMetadata | None:
        marker = fld.marker if isinstance(fld.marker, Property) else None
        explicit = marker is not None
        marker = marker or Property()

        converter = self._converter_for(owner, fld, marker, stack)
        try:
            reader = self._reader(owner, fld, marker.reader)
            writer = self._writer(owner, constructor, fld, marker.writer)
        except NoAccessorMethodError:
            if explicit:
                raise
            logger.debug("Skipping field %s of %s: no accessors", fld.name, _qualname(owner))
            return None

        mapped_name = (marker.name or "").strip() or fld.name
        indexer = marker.secondary_index
        if isinstance(indexer, type):
            indexer = indexer()
        if indexer is not None and not isinstance(indexer, Indexer):
            raise MetadataError(
                f"Secondary index of field {fld.name} in class {_qualname(owner)} "
                f"is not an Indexer: {indexer!r}"
            )
        secondary_name = None
        if indexer is not None:
            secondary_name = marker.secondary_index_name or (
                self._config.secondary_index_prefix + mapped_name
            )

        return PropertyMetadata(
            field_name=fld.name,
            declared_type=fld.declared_type,
            mapped_name=mapped_name,
            converter=converter,
            reader=reader,
            writer=writer,
            indexed=marker.indexed,
            optional=marker.optional,
            explicit=explicit,
            secondary_indexer=indexer,
            secondary_index_name=secondary_name,
        )

    def _converter_for(
        self,
        owner: type,
        fld: _Field,
        marker: Property,
        stack: tuple[type, ...],
    ) -> Converter:
        custom = marker.converter
        if custom is not None:
            if isinstance(custom, type) and issubclass(custom, Converter):
                return custom()
            if isinstance(custom, Converter):
                return custom
            raise MetadataError(
                f"Converter of field {fld.name} in class {_qualname(owner)} "
                f"is not a Converter: {custom!r}"
            )
        declared = fld.declared_type
        if is_embeddable(declared):
            return EmbeddedObjectConverter(self.introspect_embeddable(declared, stack))
        try:
            return self._converters.resolve(
                declared, default_set_type=self._config.default_set_type
            )
        except UnsupportedTypeError as e:
            raise MetadataError(
                f"Unknown or unsupported type, {declared!r}, for field {fld.name} "
                f"in class {_qualname(owner)}"
            ) from e

    def _identifier(
        self,
        owner: type,
        constructor: ConstructorMetadata,
        fld: _Field,
        marker: Identifier,
    ) -> IdentifierMetadata:
        declared = fld.declared_type
        id_class = None
        id_class_reader = None
        raw_type = declared
        if declared not in (int, str):
            if not isinstance(declared, type):
                raise MetadataError(
                    f"Identifier {fld.name} in class {_qualname(owner)} has unsupported "
                    f"type {declared!r}"
                )
            id_class = declared
            raw_type, id_class_reader = self._id_class_value(owner, fld, declared)

        reader = self._reader(owner, fld, marker.reader)
        writer = self._writer(owner, constructor, fld, marker.writer)
        return IdentifierMetadata(
            field_name=fld.name,
            data_type=IdentifierType.LONG if raw_type is int else IdentifierType.STRING,
            autogenerated=marker.autogenerated,
            reader=reader,
            writer=writer,
            id_class=id_class,
            id_class_constructor=id_class,
            id_class_reader=id_class_reader,
        )

    def _id_class_value(self, owner: type, fld: _Field, id_class: type) -> tuple[type, Reader]:
        """Find the raw value type and reader of an identifier wrapper class."""
        hints: dict[str, Any] = {}
        getter = inspect.getattr_static(id_class, "get_value", None)
        if getter is not None and inspect.isfunction(getter):
            hints = get_type_hints(getter)
            raw_type = unwrap_annotation(hints.get("return"))
            reader: Reader = getter
        else:
            try:
                hints = get_type_hints(id_class)
            except (NameError, TypeError):
                hints = {}
            raw_type = unwrap_annotation(hints.get("value"))
            reader = _attribute_reader("value")
        if raw_type not in (int, str):
            raise MetadataError(
                f"Identifier class {_qualname(id_class)} of field {fld.name} in class "
                f"{_qualname(owner)} must expose an int or str value"
            )
        return raw_type, reader

    def _key_accessors(
        self,
        owner: type,
        constructor: ConstructorMetadata,
        fld: _Field,
        marker: EntityKey | ParentKey,
    ) -> tuple[Reader, Writer]:
        if fld.declared_type is not DatastoreKey:
            raise MetadataError(
                f"{type(marker).__name__} field {fld.name} in class {_qualname(owner)} "
                f"must be of type DatastoreKey"
            )
        return self._reader(owner, fld, marker.reader), self._writer(
            owner, constructor, fld, marker.writer
        )

    def _version(
        self,
        owner: type,
        constructor: ConstructorMetadata,
        fld: _Field,
        marker: Version,
    ) -> PropertyMetadata:
        if fld.declared_type is not int:
            raise MetadataError(
                f"Version field {fld.name} in class {_qualname(owner)} must be of type int"
            )
        return PropertyMetadata(
            field_name=fld.name,
            declared_type=int,
            mapped_name=(marker.name or "").strip() or fld.name,
            converter=self._converters.resolve(int),
            reader=self._reader(owner, fld, marker.reader),
            writer=self._writer(owner, constructor, fld, marker.writer),
            explicit=True,
        )

    def _embedded(
        self,
        owner: type,
        constructor: ConstructorMetadata,
        fld: _Field,
        marker: Embedded,
        stack: tuple[type, ...],
    ) -> EmbeddedMetadata:
        declared = fld.declared_type
        if not isinstance(declared, type):
            raise MetadataError(
                f"Embedded field {fld.name} in class {_qualname(owner)} must be declared "
                f"with a class, found {declared!r}"
            )
        nested = self.introspect_embeddable(declared, stack)
        return EmbeddedMetadata(
            field_name=fld.name,
            mapped_name=(marker.name or "").strip() or fld.name,
            storage=marker.storage,
            metadata=nested,
            reader=self._reader(owner, fld, marker.reader),
            writer=self._writer(owner, constructor, fld, marker.writer),
            indexed=marker.indexed,
            optional=marker.optional,
        )

    def _check_unique_names(
        self,
        owner: type,
        properties: tuple[PropertyMetadata, ...],
        embedded: tuple[EmbeddedMetadata, ...],
    ) -> None:
        seen: set[str] = set()
        for name in collect_mapped_names(properties, embedded):
            if name in seen:
                raise MetadataError(
                    f"Class {_qualname(owner)} maps more than one field to property {name!r}"
                )
            seen.add(name)

    # --- Construction ---

    def _constructor_for(self, cls: type, builder: type | None) -> ConstructorMetadata:
        if builder is not None:
            return self._builder_constructor(cls, builder, builder)

        factory = inspect.getattr_static(cls, "new_builder", None)
        if isinstance(factory, (staticmethod, classmethod)):
            function = getattr(cls, "new_builder")
            try:
                builder_type = get_type_hints(function).get("return")
            except Exception as e:
                raise MetadataError(
                    f"Cannot resolve the builder type of {_qualname(cls)}.new_builder: {e}"
                ) from e
            if not isinstance(builder_type, type):
                raise MetadataError(
                    f"{_qualname(cls)}.new_builder must declare its builder return type"
                )
            return self._builder_constructor(cls, builder_type, function)

        if pydantic_support.is_pydantic_model(cls):
            return pydantic_support.pydantic_constructor(
                cls, validate=self._config.validate_pydantic
            )

        if _is_frozen_dataclass(cls) or (
            dataclasses.is_dataclass(cls) and not self._is_no_arg_callable(cls)
        ):
            return ConstructorMetadata(
                strategy=ConstructionStrategy.BUILDER,
                target_type=cls,
                constructor=dict,
                build=DataclassBuild(cls),
                builder_type=dict,
            )

        self._check_no_arg_callable(cls, cls)
        return ConstructorMetadata(
            strategy=ConstructionStrategy.DIRECT,
            target_type=cls,
            constructor=cls,
        )

    def _builder_constructor(
        self, cls: type, builder_type: type, factory: Callable[[], Any]
    ) -> ConstructorMetadata:
        self._check_no_arg_callable(cls, factory)
        build = inspect.getattr_static(builder_type, "build", None)
        if build is None or not inspect.isfunction(build):
            raise MetadataError(
                f"Builder {_qualname(builder_type)} of class {_qualname(cls)} "
                f"requires a build() method"
            )
        try:
            returns = get_type_hints(build).get("return")
        except (NameError, TypeError):
            returns = None
        if returns is not None and not _is_assignable(returns, cls):
            raise MetadataError(
                f"{_qualname(builder_type)}.build must return {_qualname(cls)}, "
                f"declared {returns!r}"
            )
        return ConstructorMetadata(
            strategy=ConstructionStrategy.BUILDER,
            target_type=cls,
            constructor=factory,
            build=build,
            builder_type=builder_type,
        )

    def _is_no_arg_callable(self, factory: Callable[..., Any]) -> bool:
        try:
            signature = inspect.signature(factory)
        except (TypeError, ValueError):
            return True
        return not any(
            p.default is inspect.Parameter.empty
            and p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
            for p in signature.parameters.values()
        )

    def _check_no_arg_callable(self, cls: type, factory: Callable[..., Any]) -> None:
        if not self._is_no_arg_callable(factory):
            raise MetadataError(
                f"Class {_qualname(cls)} requires a no-argument constructor or a builder"
            )

    # --- Accessors ---

    def _method(self, owner: type, name: str, role: str) -> Callable[..., Any] | None:
        """
        Return the public instance method ``name`` of ``owner``, if present.

        Raises:
            NoAccessorMethodError: If an attribute of that name exists but is
                not a usable method

        """
        attr = inspect.getattr_static(owner, name, _MISSING)
        if attr is _MISSING:
            return None
        if isinstance(attr, (staticmethod, classmethod)):
            raise NoAccessorMethodError(
                f"Method {name} in class {_qualname(owner)} must not be static"
            )
        if not inspect.isfunction(attr):
            return None
        if getattr(attr, "__isabstractmethod__", False):
            raise NoAccessorMethodError(
                f"Method {name} in class {_qualname(owner)} must not be abstract"
            )
        if name.startswith("_"):
            raise NoAccessorMethodError(f"Method {name} in class {_qualname(owner)} must be public")
        logger.debug("Resolved %s %s.%s", role, owner.__qualname__, name)
        return attr

    def _validated_reader(self, owner: type, fld: _Field, name: str) -> Reader | None:
        function = self._method(owner, name, "reader")
        if function is None:
            return None
        params = list(inspect.signature(function).parameters.values())[1:]
        if any(p.default is inspect.Parameter.empty for p in params):
            raise NoAccessorMethodError(
                f"Method {name} in class {_qualname(owner)} must take no arguments"
            )
        try:
            returns = get_type_hints(function, include_extras=True).get("return")
        except (NameError, TypeError):
            returns = None
        if returns is not None and not _is_assignable(returns, fld.declared_type):
            raise NoAccessorMethodError(
                f"Method {name} in class {_qualname(owner)} must have a return type of "
                f"{fld.declared_type!r}"
            )
        return function

    def _validated_writer(self, owner: type, fld: _Field, name: str) -> Writer | None:
        function = self._method(owner, name, "writer")
        if function is None:
            return None
        params = [
            p
            for p in list(inspect.signature(function).parameters.values())[1:]
            if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
        ]
        if len(params) != 1:
            raise NoAccessorMethodError(
                f"Method {name} in class {_qualname(owner)} must take exactly one argument"
            )
        try:
            hints = get_type_hints(function, include_extras=True)
        except (NameError, TypeError):
            hints = {}
        accepted = hints.get(params[0].name)
        if accepted is not None and unwrap_annotation(accepted) != fld.declared_type:
            raise NoAccessorMethodError(
                f"Method {name} ({fld.declared_type!r}) is required in class {_qualname(owner)}"
            )
        return _method_writer(function)

    def _reader(self, owner: type, fld: _Field, explicit_name: str | None) -> Reader:
        if explicit_name:
            reader = self._validated_reader(owner, fld, explicit_name)
            if reader is None:
                raise NoAccessorMethodError(
                    f"Method {explicit_name} is required in class {_qualname(owner)}"
                )
            return reader

        names = [f"get_{fld.name}"]
        if fld.declared_type is bool:
            names.insert(0, f"is_{fld.name}")
        for position, name in enumerate(names):
            try:
                reader = self._validated_reader(owner, fld, name)
            except NoAccessorMethodError:
                # A bad is_<field> still lets get_<field> through
                if position == len(names) - 1:
                    raise
                continue
            if reader is not None:
                return reader

        attr = inspect.getattr_static(owner, fld.name, _MISSING)
        if isinstance(attr, property) and attr.fget is None:
            raise NoAccessorMethodError(
                f"Property {fld.name} in class {_qualname(owner)} is not readable"
            )
        return _attribute_reader(fld.name)

    def _writer(
        self,
        owner: type,
        constructor: ConstructorMetadata,
        fld: _Field,
        explicit_name: str | None,
    ) -> Writer:
        target = constructor.builder_type if constructor.is_builder else owner
        if target is dict:
            return _item_writer(fld.name)

        if explicit_name:
            writer = self._validated_writer(target, fld, explicit_name)
            if writer is None:
                raise NoAccessorMethodError(
                    f"Method {explicit_name} ({fld.declared_type!r}) is required in class "
                    f"{_qualname(target)}"
                )
            return writer

        names = [f"set_{fld.name}"]
        if constructor.is_builder:
            names.append(fld.name)
        for name in names:
            writer = self._validated_writer(target, fld, name)
            if writer is not None:
                return writer

        attr = inspect.getattr_static(target, fld.name, _MISSING)
        if isinstance(attr, property):
            if attr.fset is None:
                raise NoAccessorMethodError(
                    f"Property {fld.name} in class {_qualname(target)} is read-only"
                )
            return _attribute_writer(fld.name)
        if _is_frozen_dataclass(target):
            raise NoAccessorMethodError(
                f"Method set_{fld.name} ({fld.declared_type!r}) is required in frozen "
                f"class {_qualname(target)}"
            )
        if constructor.is_builder and not self._has_attribute_slot(target, fld.name):
            raise NoAccessorMethodError(
                f"Method set_{fld.name} ({fld.declared_type!r}) is required in builder "
                f"class {_qualname(target)}"
            )
        return _attribute_writer(fld.name)

    def _has_attribute_slot(self, cls: type, name: str) -> bool:
        """Whether instances of ``cls`` can take attribute ``name``."""
        for klass in cls.__mro__:
            if name in getattr(klass, "__annotations__", {}):
                return True
        return any(
            "__dict__" in vars(klass) or name in getattr(klass, "__slots__", ())
            for klass in cls.__mro__
            if klass is not object
        )
