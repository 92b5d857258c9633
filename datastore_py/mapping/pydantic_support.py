"""
Pydantic model support for datastore-py.

Pydantic models map like any other model class, with two differences:
only declared model fields are considered, and instances are always built
through the builder strategy. Field values are collected into a dict and
the model is produced by ``model_validate`` (or ``model_construct`` when
validation is disabled in :class:`~datastore_py.config.MapperConfig`).

Usage:
    from typing import Annotated
    from pydantic import BaseModel, ConfigDict

    @entity(kind="people")
    class Person(BaseModel):
        model_config = ConfigDict(frozen=True)

        id: Annotated[int | None, Identifier()] = None
        name: Annotated[str, Property(indexed=False)] = ""

    entity = marshal(Person(id=7, name="Ada"))
    person = unmarshal(entity, Person)
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from datastore_py.mapping.metadata import ConstructionStrategy, ConstructorMetadata


def is_pydantic_model(cls: Any) -> bool:
    return isinstance(cls, type) and issubclass(cls, BaseModel)


def model_type_hints(cls: type[BaseModel]) -> dict[str, Any]:
    """
    Field annotations of a pydantic model, ``Annotated`` extras included.

    Only declared model fields are returned. Annotations are rebuilt from
    the field info pydantic already resolved, in declaration order.
    """
    return {name: info.rebuild_annotation() for name, info in cls.model_fields.items()}


class PydanticBuild:
    """
    Build step turning collected field values into a model instance.

    Example:
        build = PydanticBuild(Person)
        person = build({"name": "Ada"})

    """

    __slots__ = ("_model", "_validate")

    def __init__(self, model: type[BaseModel], validate: bool = True) -> None:
        self._model = model
        self._validate = validate

    def __call__(self, values: dict[str, Any]) -> BaseModel:
        if self._validate:
            return self._model.model_validate(values)
        return self._model.model_construct(**values)

    def __repr__(self) -> str:
        return f"PydanticBuild({self._model.__name__}, validate={self._validate})"


def pydantic_constructor(model: type[BaseModel], validate: bool = True) -> ConstructorMetadata:
    """
    Create the construction metadata for a pydantic model.

    Args:
        model: The pydantic model class
        validate: If True (default), validate collected values.
                 If False, use model_construct() for faster creation without validation.

    Returns:
        Builder-strategy metadata using a dict as the intermediate builder

    """
    return ConstructorMetadata(
        strategy=ConstructionStrategy.BUILDER,
        target_type=model,
        constructor=dict,
        build=PydanticBuild(model, validate),
        builder_type=dict,
    )
