"""
Tests for extraction schemas and the extraction coordinator.
"""

import pytest

from actwright.engine.extraction import ExtractionCoordinator, ExtractionSchema, FieldSpec
from actwright.exceptions import SchemaMismatch
from tests.fakes import ScriptedInterpreter


class TestSchemaShorthand:
    """Test building schemas from plain dicts."""

    def test_scalars_and_optional(self):
        schema = ExtractionSchema.from_dict({"price": "string", "stock": "integer?"})

        assert schema.to_json_schema() == {
            "type": "object",
            "properties": {"price": {"type": "string"}, "stock": {"type": "integer"}},
            "required": ["price"],
        }

    def test_arrays_and_nested_objects(self):
        schema = ExtractionSchema.from_dict({
            "tags": ["string"],
            "seller": {"name": "string", "rating": "number?"},
        })
        json_schema = schema.to_json_schema()

        assert json_schema["properties"]["tags"] == {"type": "array", "items": {"type": "string"}}
        assert json_schema["properties"]["seller"]["required"] == ["name"]

    def test_explicit_field_options(self):
        schema = ExtractionSchema.from_dict({
            "price": {"kind": "number", "allow_numeric_string": True, "description": "Unit price"},
        })
        spec = schema.fields[0]

        assert spec.allow_numeric_string
        assert spec.to_json_schema() == {"type": "number", "description": "Unit price"}

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            ExtractionSchema.from_dict({"price": "money"})

    def test_bad_array_shorthand(self):
        with pytest.raises(ValueError):
            ExtractionSchema.from_dict({"tags": ["string", "number"]})


class TestValidate:
    """Test validation of interpreter output."""

    def test_string_price_matches_string_field(self):
        schema = ExtractionSchema.from_dict({"price": "string"})
        assert schema.validate({"price": "19.99"}) == {"price": "19.99"}

    def test_number_is_not_a_string(self):
        schema = ExtractionSchema.from_dict({"price": "string"})

        with pytest.raises(SchemaMismatch) as exc_info:
            schema.validate({"price": 19.99})
        assert exc_info.value.field == "price"
        assert exc_info.value.payload == {"price": 19.99}

    def test_numeric_string_is_not_a_number_by_default(self):
        schema = ExtractionSchema.from_dict({"price": "number"})

        with pytest.raises(SchemaMismatch):
            schema.validate({"price": "19.99"})

    def test_numeric_string_converted_when_allowed(self):
        schema = ExtractionSchema([
            FieldSpec("price", "number", allow_numeric_string=True),
            FieldSpec("stock", "integer", allow_numeric_string=True),
        ])

        assert schema.validate({"price": "19.99", "stock": "3"}) == {"price": 19.99, "stock": 3}

    def test_boolean_is_not_a_number(self):
        schema = ExtractionSchema.from_dict({"count": "integer"})

        with pytest.raises(SchemaMismatch):
            schema.validate({"count": True})

    def test_missing_required_field(self):
        schema = ExtractionSchema.from_dict({"price": "string", "title": "string"})

        with pytest.raises(SchemaMismatch) as exc_info:
            schema.validate({"price": "19.99"})
        assert exc_info.value.field == "title"

    def test_null_required_field(self):
        schema = ExtractionSchema.from_dict({"price": "string"})

        with pytest.raises(SchemaMismatch):
            schema.validate({"price": None})

    def test_optional_fields(self):
        schema = ExtractionSchema.from_dict({"price": "string", "stock": "integer?", "sku": "string?"})

        assert schema.validate({"price": "1", "stock": None}) == {"price": "1", "stock": None}

    def test_undeclared_keys_are_dropped(self):
        schema = ExtractionSchema.from_dict({"price": "string"})
        assert schema.validate({"price": "1", "currency": "USD"}) == {"price": "1"}

    def test_nested_path_in_error(self):
        schema = ExtractionSchema.from_dict({"items": [{"name": "string"}]})

        with pytest.raises(SchemaMismatch) as exc_info:
            schema.validate({"items": [{"name": "a"}, {"name": 3}]})
        assert exc_info.value.field == "items[1].name"

    def test_top_level_must_be_an_object(self):
        with pytest.raises(SchemaMismatch):
            ExtractionSchema.from_dict({"price": "string"}).validate(["19.99"])

    def test_number_field_keeps_integers(self):
        schema = ExtractionSchema.from_dict({"price": "number", "stock": "number"})
        result = schema.validate({"price": 19.99, "stock": 3})

        assert result == {"price": 19.99, "stock": 3}
        assert isinstance(result["stock"], int)

    def test_number_error_names_the_field(self):
        schema = ExtractionSchema.from_dict({"price": "number"})

        with pytest.raises(SchemaMismatch) as exc_info:
            schema.validate({"price": "cheap"})
        assert exc_info.value.field == "price"

    @pytest.mark.parametrize("raw", ["3.5", "nan", "three"])
    def test_non_integer_strings_stay_rejected(self, raw):
        schema = ExtractionSchema([FieldSpec("stock", "integer", allow_numeric_string=True)])

        with pytest.raises(SchemaMismatch):
            schema.validate({"stock": raw})

    def test_missing_nested_field_path(self):
        schema = ExtractionSchema.from_dict({"seller": {"name": "string", "rating": "number?"}})

        with pytest.raises(SchemaMismatch) as exc_info:
            schema.validate({"seller": {"rating": 4.5}})
        assert exc_info.value.field == "seller.name"

    def test_field_names_that_are_not_identifiers(self):
        schema = ExtractionSchema.from_dict({"schema": "string", "unit price": "number", "_id": "integer"})

        assert schema.validate({"schema": "v1", "unit price": 2.5, "_id": 7}) == {
            "schema": "v1",
            "unit price": 2.5,
            "_id": 7,
        }

    def test_model_is_built_once(self):
        schema = ExtractionSchema.from_dict({"price": "string"})
        assert schema.model is schema.model


class TestExtractionCoordinator:
    """Test the interpreter round trip."""

    @pytest.mark.asyncio
    async def test_extract(self, snapshot):
        interpreter = ScriptedInterpreter(extractions=[{"price": "19.99"}])
        coordinator = ExtractionCoordinator(interpreter)

        data = await coordinator.extract("Get the price", snapshot, {"price": "string"}, url="https://shop.example")

        assert data == {"price": "19.99"}
        assert coordinator.call_count == 1
        kind, request = interpreter.requests[0]
        assert kind == "extract"
        assert request.schema["required"] == ["price"]
        assert request.url == "https://shop.example"
        assert "button: Send" in request.tree

    @pytest.mark.asyncio
    async def test_mismatch_fails_whole_result(self, snapshot):
        interpreter = ScriptedInterpreter(extractions=[{"price": 19.99, "title": "Lamp"}])
        coordinator = ExtractionCoordinator(interpreter)

        with pytest.raises(SchemaMismatch):
            await coordinator.extract("Get the product", snapshot, {"price": "string", "title": "string"})
