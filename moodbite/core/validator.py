"""Schema validation for untrusted recipe payloads.

Every path that receives data from outside (LLM output, HTTP bodies) goes
through here. Validation is strict about the payload and never mutates it:
numeric strings are accepted for numeric fields, but nothing is clamped,
defaulted or stringified.
"""
from enum import Enum

from pydantic import ValidationError as PydanticValidationError

from moodbite.core.schemas import Recipe


class ErrorKind(str, Enum):
    MISSING_FIELD = "missing_field"
    WRONG_TYPE = "wrong_type"
    INVALID_ENUM = "invalid_enum"
    EMPTY_COLLECTION = "empty_collection"
    OUT_OF_RANGE = "out_of_range"
    WRONG_COUNT = "wrong_count"


# pydantic error type -> our kind; anything unlisted is a type problem
_KIND_BY_PYDANTIC_TYPE = {
    "missing": ErrorKind.MISSING_FIELD,
    "enum": ErrorKind.INVALID_ENUM,
    "literal_error": ErrorKind.INVALID_ENUM,
    "too_short": ErrorKind.EMPTY_COLLECTION,
    "string_too_short": ErrorKind.EMPTY_COLLECTION,
    "greater_than": ErrorKind.OUT_OF_RANGE,
    "greater_than_equal": ErrorKind.OUT_OF_RANGE,
    "finite_number": ErrorKind.OUT_OF_RANGE,
}


class ValidationError(Exception):
    """A payload failed the Recipe schema.

    `field` is a dotted path in wire names (``ingredients.0.quantity``);
    for array validation it is prefixed with the element index (``[1].calories``)
    and `index` is set.
    """

    def __init__(self, kind, field, message, index=None):
        self.kind = ErrorKind(kind)
        self.field = field
        self.message = message
        self.index = index
        super().__init__(f"{self.kind.value} at '{field}': {message}")

    def to_dict(self):
        d = {"kind": self.kind.value, "field": self.field, "message": self.message}
        if self.index is not None:
            d["index"] = self.index
        return d


def _first_error(exc: PydanticValidationError) -> ValidationError:
    err = exc.errors()[0]
    field = ".".join(str(p) for p in err["loc"]) or "recipe"
    kind = _KIND_BY_PYDANTIC_TYPE.get(err["type"], ErrorKind.WRONG_TYPE)
    return ValidationError(kind, field, err["msg"])


def validate_recipe(value) -> Recipe:
    if not isinstance(value, dict):
        raise ValidationError(ErrorKind.WRONG_TYPE, "recipe", f"expected an object, got {type(value).__name__}")
    try:
        return Recipe.model_validate(value)
    except PydanticValidationError as e:
        raise _first_error(e) from None


def validate_recipe_array(value, expected_count=None, allow_empty=False) -> list[Recipe]:
    if not isinstance(value, list):
        raise ValidationError(ErrorKind.WRONG_TYPE, "recipes", f"expected an array, got {type(value).__name__}")
    if not value and not allow_empty:
        raise ValidationError(ErrorKind.EMPTY_COLLECTION, "recipes", "expected at least one recipe")
    if expected_count is not None and len(value) != expected_count:
        raise ValidationError(
            ErrorKind.WRONG_COUNT, "recipes", f"expected {expected_count} recipes, got {len(value)}"
        )

    recipes = []
    for i, item in enumerate(value):
        try:
            recipes.append(validate_recipe(item))
        except ValidationError as e:
            raise ValidationError(e.kind, f"[{i}].{e.field}", e.message, index=i) from None
    return recipes
