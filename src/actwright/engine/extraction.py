"""
Extraction Coordinator - Typed data out of the current page.

The caller describes the result shape as an ExtractionSchema; the interpreter
is asked for data in that shape and its answer is validated by a strict
pydantic model built from the shape (no coercion between kinds). Extraction
is all-or-nothing: the first bad field fails the whole result with
SchemaMismatch.

Example:
    >>> schema = ExtractionSchema.from_dict({"price": "string", "stock": "integer?"})
    >>> coordinator = ExtractionCoordinator(interpreter)
    >>> data = await coordinator.extract("Get the price", snapshot, schema)
    >>> data["price"]
    '19.99'
"""

import logging
import math
from dataclasses import dataclass, field
from functools import cached_property
from typing import Annotated, Any, Callable, Dict, List, Mapping, Optional, Tuple, Type, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    create_model,
)

from actwright.engine.tree_indexer import IndexedSnapshot
from actwright.exceptions import SchemaMismatch
from actwright.interfaces.interpreter import ExtractRequest, IInterpreter

logger = logging.getLogger(__name__)

KINDS = ("string", "number", "integer", "boolean", "array", "object")

@dataclass
class FieldSpec:
    """
    Shape of one field.

    Attributes:
        name: Field name (empty for array items)
        kind: One of KINDS
        required: Missing or null values fail extraction
        allow_numeric_string: Accept "19.99" for number/integer fields and
            convert it; off by default
        items: Item shape for arrays
        fields: Member shapes for objects
        description: Hint passed to the interpreter
    """
    name: str
    kind: str
    required: bool = True
    allow_numeric_string: bool = False
    items: Optional["FieldSpec"] = None
    fields: List["FieldSpec"] = field(default_factory=list)
    description: str = ""

    def __post_init__(self) -> None:
        if self.kind not in KINDS:
            raise ValueError(f"Unknown field kind {self.kind!r} for {self.name or 'item'}")

    def to_json_schema(self) -> Dict[str, Any]:
        if self.kind == "object":
            schema = _object_schema(self.fields)
        elif self.kind == "array":
            schema = {"type": "array"}
            if self.items is not None:
                schema["items"] = self.items.to_json_schema()
        else:
            schema = {"type": self.kind}
        if self.description:
            schema["description"] = self.description
        return schema


def _object_schema(fields: List[FieldSpec]) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {f.name: f.to_json_schema() for f in fields},
        "required": [f.name for f in fields if f.required],
    }


def _spec_from(name: str, raw: Any) -> FieldSpec:
    """
    Build a FieldSpec from shorthand:

    - "string", "number?" (trailing ? = optional)
    - ["string"] for an array of strings
    - {"kind": "number", "allow_numeric_string": true, ...}
    - any other dict is a nested object
    """
    if isinstance(raw, FieldSpec):
        return raw
    if isinstance(raw, str):
        kind = raw.strip()
        required = not kind.endswith("?")
        return FieldSpec(name=name, kind=kind.rstrip("?"), required=required)
    if isinstance(raw, list):
        if len(raw) != 1:
            raise ValueError(f"Array shorthand for {name!r} needs exactly one item shape")
        return FieldSpec(name=name, kind="array", items=_spec_from("", raw[0]))
    if isinstance(raw, Mapping):
        if "kind" in raw:
            items = raw.get("items")
            fields = raw.get("fields") or {}
            return FieldSpec(
                name=name,
                kind=raw["kind"],
                required=raw.get("required", True),
                allow_numeric_string=raw.get("allow_numeric_string", False),
                items=_spec_from("", items) if items is not None else None,
                fields=[_spec_from(k, v) for k, v in fields.items()],
                description=raw.get("description", ""),
            )
        return FieldSpec(name=name, kind="object", fields=[_spec_from(k, v) for k, v in raw.items()])
    raise ValueError(f"Cannot read field shape for {name!r}: {raw!r}")


@dataclass
class ExtractionSchema:
    """The caller's result shape: an object with named fields."""
    fields: List[FieldSpec]

    @classmethod
    def from_dict(cls, shape: Mapping[str, Any]) -> "ExtractionSchema":
        return cls(fields=[_spec_from(name, raw) for name, raw in shape.items()])

    def to_json_schema(self) -> Dict[str, Any]:
        return _object_schema(self.fields)

    @cached_property
    def model(self) -> Type[BaseModel]:
        """Strict pydantic model for the shape, built on first use."""
        return _model_for(self.fields, "ExtractionResult")

    def validate(self, value: Any) -> Dict[str, Any]:
        """
        Check a value against the schema.

        Returns:
            The validated value; numeric strings are converted only where a
            field allows it, undeclared keys are dropped and optional fields
            the interpreter left out stay absent

        Raises:
            SchemaMismatch: On the first field that does not conform
        """
        try:
            result = self.model.model_validate(value)
        except ValidationError as e:
            error = e.errors()[0]
            where = _field_path(self.fields, error["loc"])
            raise SchemaMismatch(f"Field {where!r}: {error['msg']}", where, value)
        return result.model_dump(by_alias=True, exclude_unset=True)


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

_SCALARS: Dict[str, Any] = {
    "string": StrictStr,
    "number": Union[StrictInt, StrictFloat],
    "integer": StrictInt,
    "boolean": StrictBool,
}


def _numeric_string(kind: str) -> Callable[[Any], Any]:
    convert = float if kind == "number" else int

    def widen(value: Any) -> Any:
        if not isinstance(value, str):
            return value
        try:
            converted = convert(value.strip())
        except ValueError:
            return value
        return converted if math.isfinite(converted) else value

    return widen


def _annotation(spec: FieldSpec, model_name: str) -> Any:
    if spec.kind == "object":
        annotation: Any = _model_for(spec.fields, model_name)
    elif spec.kind == "array":
        annotation = List[_annotation(spec.items, f"{model_name}Item")] if spec.items else List[Any]
    else:
        annotation = _SCALARS[spec.kind]
    if spec.allow_numeric_string and spec.kind in ("number", "integer"):
        annotation = Annotated[annotation, BeforeValidator(_numeric_string(spec.kind))]
    return annotation


def _model_for(fields: List[FieldSpec], model_name: str) -> Type[BaseModel]:
    # Field names go through aliases: caller keys such as "schema" or
    # "_id" are not valid model attribute names
    definitions: Dict[str, Any] = {}
    for i, spec in enumerate(fields):
        annotation = _annotation(spec, f"{model_name}_{i}")
        if spec.required:
            definitions[f"field_{i}"] = (annotation, Field(..., alias=spec.name))
        else:
            definitions[f"field_{i}"] = (Optional[annotation], Field(None, alias=spec.name))
    return create_model(model_name, __config__=ConfigDict(extra="ignore"), **definitions)


def _field_path(fields: List[FieldSpec], loc: Tuple[Any, ...]) -> str:
    """
    Dotted path of the field a pydantic error location points at, e.g.
    ("items", 1, "name") -> "items[1].name". Trailing parts that name union
    members or validators are ignored.
    """
    path = ""
    kind = "object"
    members = fields
    current: Optional[FieldSpec] = None
    for part in loc:
        if kind == "object" and isinstance(part, str):
            current = next((f for f in members if f.name == part), None)
            if current is None:
                break
            path = f"{path}.{part}" if path else part
        elif kind == "array" and isinstance(part, int):
            path += f"[{part}]"
            current = current.items if current else None
            if current is None:
                break
        else:
            break
        kind = current.kind
        members = current.fields
    return path or "$"


class ExtractionCoordinator:
    """
    Ask the interpreter for structured data and validate it.

    Usage:
        coordinator = ExtractionCoordinator(interpreter)
        data = await coordinator.extract("Get the price", snapshot, {"price": "string"})
    """

    def __init__(self, interpreter: IInterpreter, max_tree_lines: int = 400):
        self._interpreter = interpreter
        self._max_tree_lines = max_tree_lines
        self._calls = 0

    @property
    def call_count(self) -> int:
        return self._calls

    async def extract(
        self,
        instruction: str,
        snapshot: IndexedSnapshot,
        schema: Union[ExtractionSchema, Mapping[str, Any]],
        url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Extract data matching `schema` from the page.

        Raises:
            SchemaMismatch: If any field is missing or of the wrong kind
        """
        if not isinstance(schema, ExtractionSchema):
            schema = ExtractionSchema.from_dict(schema)

        request = ExtractRequest(
            instruction=instruction,
            tree=snapshot.to_prompt_context(self._max_tree_lines),
            url=url,
            schema=schema.to_json_schema(),
        )
        self._calls += 1
        raw = await self._interpreter.extract(request)

        try:
            data = schema.validate(raw)
        except SchemaMismatch as e:
            logger.warning(f"Extraction for {instruction!r} rejected: {e.message}")
            raise
        logger.debug(f"Extracted {len(data)} field(s) for {instruction!r}")
        return data
