from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Pydantic Schemas for Recipes

RECIPES_PER_BATCH = 3

NonEmptyStr = Annotated[str, Field(min_length=1)]


class MealType(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"


class CalorieMode(str, Enum):
    LOW_CAL = "low-cal"
    NUTRITIONAL = "nutritional"
    TREAT_DAY = "treat-day"


class Mode(str, Enum):
    GENERATE = "generate"  # a batch of RECIPES_PER_BATCH recipes
    ADJUST = "adjust"      # exactly one recipe


def _reject_bool(v):
    # json true/false must never pass as 1/0
    if isinstance(v, bool):
        raise ValueError("boolean is not a number")
    return v


class Ingredient(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: NonEmptyStr
    quantity: float = Field(gt=0, allow_inf_nan=False)
    unit: NonEmptyStr

    @field_validator("quantity", mode="before")
    @classmethod
    def check_quantity(cls, v):
        return _reject_bool(v)


class Recipe(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str | int | None = None
    recipe_name: NonEmptyStr = Field(alias="recipeName")
    description: str
    calories: int = Field(ge=0)  # total for the stated servings
    servings: int = Field(ge=1)
    meal_type: MealType = Field(alias="mealType")
    ingredients: list[Ingredient] = Field(min_length=1)
    instructions: list[NonEmptyStr] = Field(min_length=1)
    user_image: str | None = Field(default=None, alias="userImage")

    @field_validator("calories", "servings", mode="before")
    @classmethod
    def check_counts(cls, v):
        return _reject_bool(v)

    def to_wire(self):
        """Returns the camelCase JSON shape used over HTTP and in prompts."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# Response schema hints handed to providers that support structured output.
# They steer the model; the validator is still the only source of truth.
INGREDIENT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "name": {"type": "STRING", "description": "The name of the ingredient."},
        "quantity": {"type": "NUMBER", "description": "The numeric quantity of the ingredient."},
        "unit": {"type": "STRING", "description": "The unit of measurement (e.g., 'g', 'ml', 'cup', 'tbsp')."},
    },
    "required": ["name", "quantity", "unit"],
}

RECIPE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "recipeName": {"type": "STRING", "description": "The name of the recipe."},
        "description": {
            "type": "STRING",
            "description": "A short, gentle, and encouraging description of the dish, highlighting its health benefits.",
        },
        "calories": {"type": "INTEGER", "description": "Estimated total calories for the entire recipe."},
        "servings": {"type": "INTEGER", "description": "The number of people this recipe serves."},
        "mealType": {
            "type": "STRING",
            "enum": [m.value for m in MealType],
            "description": "The category of the meal. Must be one of: 'breakfast', 'lunch', or 'dinner'.",
        },
        "ingredients": {"type": "ARRAY", "items": INGREDIENT_SCHEMA},
        "instructions": {
            "type": "ARRAY",
            "items": {"type": "STRING", "description": "A single step in the cooking instructions."},
        },
    },
    "required": ["recipeName", "description", "calories", "servings", "mealType", "ingredients", "instructions"],
}

RECIPE_BATCH_SCHEMA = {"type": "ARRAY", "items": RECIPE_SCHEMA}


def response_schema_for(mode):
    return RECIPE_BATCH_SCHEMA if Mode(mode) is Mode.GENERATE else RECIPE_SCHEMA
