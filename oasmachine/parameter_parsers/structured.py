"""
The ``form`` style, the default for query and cookie parameters.

Given the parameter ``id``::

    scalar                   id=5
    array                    id=3,4,5
    array (explode=true)     id=3&id=4&id=5
    object                   id=role,admin,firstName,Alex
    object (explode=true)    role=admin&firstName=Alex
"""

from typing import Any, Dict

from ..models import ParameterLocation, ValuesBag
from .simple import get_decoder, pairs_to_object, schema_type, split_list
from .types import ParserContext


def generate_form_parser(schema: Dict[str, Any], explode: bool, uri_encoded: bool = True):
    decode = get_decoder(uri_encoded)
    kind = schema_type(schema)

    def decode_value(value):
        if isinstance(value, list):
            return [decode(item) for item in value]
        return decode(value)

    def parse_exploded_object(values: ValuesBag) -> Any:
        # Each property is its own key; only declared properties are claimed
        # when the schema declares any.
        properties = schema.get("properties")
        keys = [key for key in values if key in properties] if properties else list(values)
        if not keys:
            return None
        return {key: decode_value(values[key]) for key in keys}

    def form_parser(
        location: ParameterLocation,
        values: ValuesBag,
        raw_query: str,
        context: ParserContext,
    ) -> Any:
        if kind == "object" and explode:
            return parse_exploded_object(values)

        raw = values.get(location.name)
        if raw is None:
            return None

        if kind == "array":
            items = raw if isinstance(raw, list) else [raw]
            if explode:
                return [decode(item) for item in items]
            result = []
            for item in items:
                result.extend(decode(part) for part in split_list(item))
            return result

        if kind == "object":
            if isinstance(raw, list):
                raise ValueError(f"Expected one value for {location.name} but got {len(raw)}")
            return pairs_to_object(split_list(raw), decode)

        return decode_value(raw)

    return form_parser
