import pytest

from moodbite.core.schemas import MealType
from moodbite.core.validator import ErrorKind, ValidationError, validate_recipe, validate_recipe_array

from conftest import make_batch, make_recipe_dict

REQUIRED_FIELDS = ["recipeName", "description", "calories", "servings", "mealType", "ingredients", "instructions"]


def test_valid_recipe_round_trips():
    d = make_recipe_dict(id="r-1", userImage="data:image/png;base64,AAAA")
    recipe = validate_recipe(d)

    assert recipe.recipe_name == "Lemon Herb Quinoa Bowl"
    assert recipe.meal_type is MealType.LUNCH
    assert recipe.to_wire() == d


def test_optional_fields_are_not_invented():
    wire = validate_recipe(make_recipe_dict()).to_wire()
    assert "id" not in wire
    assert "userImage" not in wire


@pytest.mark.parametrize("field", REQUIRED_FIELDS)
def test_missing_field_is_named(field):
    d = make_recipe_dict()
    del d[field]

    with pytest.raises(ValidationError) as exc:
        validate_recipe(d)
    assert exc.value.kind is ErrorKind.MISSING_FIELD
    assert exc.value.field == field


def test_missing_ingredient_field_has_path():
    d = make_recipe_dict()
    del d["ingredients"][1]["unit"]

    with pytest.raises(ValidationError) as exc:
        validate_recipe(d)
    assert exc.value.kind is ErrorKind.MISSING_FIELD
    assert exc.value.field == "ingredients.1.unit"


@pytest.mark.parametrize("meal_type", ["brunch", "Lunch", "snack", ""])
def test_meal_type_outside_enum(meal_type):
    with pytest.raises(ValidationError) as exc:
        validate_recipe(make_recipe_dict(mealType=meal_type))
    assert exc.value.kind is ErrorKind.INVALID_ENUM
    assert exc.value.field == "mealType"


def test_numeric_strings_are_coerced():
    d = make_recipe_dict(calories="640", servings="2")
    d["ingredients"][0]["quantity"] = "1.5"

    recipe = validate_recipe(d)
    assert recipe.calories == 640
    assert recipe.servings == 2
    assert recipe.ingredients[0].quantity == 1.5


@pytest.mark.parametrize("field", ["recipeName", "description"])
def test_numbers_are_not_stringified(field):
    with pytest.raises(ValidationError) as exc:
        validate_recipe(make_recipe_dict(**{field: 42}))
    assert exc.value.kind is ErrorKind.WRONG_TYPE
    assert exc.value.field == field


def test_numeric_unit_is_rejected():
    d = make_recipe_dict()
    d["ingredients"][0]["unit"] = 1

    with pytest.raises(ValidationError) as exc:
        validate_recipe(d)
    assert exc.value.kind is ErrorKind.WRONG_TYPE
    assert exc.value.field == "ingredients.0.unit"


@pytest.mark.parametrize("overrides", [
    {"calories": True},
    {"calories": 450.5},
    {"calories": "lots"},
    {"servings": [2]},
    {"ingredients": "quinoa, lemon"},
    {"instructions": "Cook it."},
])
def test_wrong_types(overrides):
    with pytest.raises(ValidationError) as exc:
        validate_recipe(make_recipe_dict(**overrides))
    assert exc.value.kind is ErrorKind.WRONG_TYPE


@pytest.mark.parametrize("overrides,field", [
    ({"servings": 0}, "servings"),
    ({"calories": -10}, "calories"),
])
def test_bounds_are_checked_not_clamped(overrides, field):
    with pytest.raises(ValidationError) as exc:
        validate_recipe(make_recipe_dict(**overrides))
    assert exc.value.kind is ErrorKind.OUT_OF_RANGE
    assert exc.value.field == field


@pytest.mark.parametrize("quantity", [0, -1, float("nan"), float("inf")])
def test_quantity_must_be_positive_and_finite(quantity):
    d = make_recipe_dict()
    d["ingredients"][2]["quantity"] = quantity

    with pytest.raises(ValidationError) as exc:
        validate_recipe(d)
    assert exc.value.kind is ErrorKind.OUT_OF_RANGE
    assert exc.value.field == "ingredients.2.quantity"


@pytest.mark.parametrize("overrides,field", [
    ({"ingredients": []}, "ingredients"),
    ({"instructions": []}, "instructions"),
    ({"instructions": ["Cook.", ""]}, "instructions.1"),
    ({"recipeName": ""}, "recipeName"),
])
def test_empty_collections(overrides, field):
    with pytest.raises(ValidationError) as exc:
        validate_recipe(make_recipe_dict(**overrides))
    assert exc.value.kind is ErrorKind.EMPTY_COLLECTION
    assert exc.value.field == field


def test_calories_zero_and_empty_description_are_fine():
    recipe = validate_recipe(make_recipe_dict(calories=0, description=""))
    assert recipe.calories == 0


@pytest.mark.parametrize("value", [None, "recipe", 3, [make_recipe_dict()]])
def test_non_object_recipe(value):
    with pytest.raises(ValidationError) as exc:
        validate_recipe(value)
    assert exc.value.kind is ErrorKind.WRONG_TYPE
    assert exc.value.field == "recipe"


def test_recipe_array():
    recipes = validate_recipe_array(make_batch(), expected_count=3)
    assert [r.recipe_name for r in recipes] == ["Recipe 1", "Recipe 2", "Recipe 3"]


def test_recipe_array_not_a_list():
    with pytest.raises(ValidationError) as exc:
        validate_recipe_array({"recipes": make_batch()})
    assert exc.value.kind is ErrorKind.WRONG_TYPE


def test_recipe_array_empty():
    with pytest.raises(ValidationError) as exc:
        validate_recipe_array([])
    assert exc.value.kind is ErrorKind.EMPTY_COLLECTION
    assert validate_recipe_array([], allow_empty=True) == []


def test_recipe_array_count():
    with pytest.raises(ValidationError) as exc:
        validate_recipe_array(make_batch(2), expected_count=3)
    assert exc.value.kind is ErrorKind.WRONG_COUNT


def test_recipe_array_reports_first_failing_index():
    batch = make_batch()
    batch[1]["mealType"] = "supper"
    batch[2]["servings"] = 0

    with pytest.raises(ValidationError) as exc:
        validate_recipe_array(batch)
    assert exc.value.index == 1
    assert exc.value.kind is ErrorKind.INVALID_ENUM
    assert exc.value.field == "[1].mealType"
    assert exc.value.to_dict()["index"] == 1
