"""Serving-size scaling and quantity display helpers."""

COMMON_FRACTIONS = [
    (1 / 4, "1/4"),
    (1 / 3, "1/3"),
    (1 / 2, "1/2"),
    (2 / 3, "2/3"),
    (3 / 4, "3/4"),
]
FRACTION_TOLERANCE = 0.01


def clamp_servings(servings):
    return max(1, int(servings))


def scale_quantity(quantity, from_servings, to_servings):
    return quantity / from_servings * to_servings


def scale_recipe(recipe, servings):
    """Returns a copy of `recipe` rescaled to `servings` (never below 1)."""
    servings = clamp_servings(servings)
    if servings == recipe.servings:
        return recipe

    ingredients = [
        ing.model_copy(update={"quantity": scale_quantity(ing.quantity, recipe.servings, servings)})
        for ing in recipe.ingredients
    ]
    calories = round(scale_quantity(recipe.calories, recipe.servings, servings))
    return recipe.model_copy(update={"ingredients": ingredients, "calories": calories, "servings": servings})


def format_quantity(quantity):
    if quantity == 0:
        return "0"
    if quantity < 0.1:
        return f"{quantity:.2f}"
    if quantity < 1:
        for value, label in COMMON_FRACTIONS:
            if abs(quantity - value) < FRACTION_TOLERANCE:
                return label

    text = f"{quantity:.1f}"
    if text.endswith(".0"):
        text = text[:-2]
    return text


def format_ingredient(ingredient):
    return f"{format_quantity(ingredient.quantity)} {ingredient.unit} {ingredient.name}"
