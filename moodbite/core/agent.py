import json
import uuid
import logging

from moodbite.core.normalizer import normalize
from moodbite.core.schemas import CalorieMode, MealType, Mode, Recipe, RECIPES_PER_BATCH

log = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = """
You are MoodBite, a friendly home-cooking chef.

OUTPUT FORMAT:
Respond with JSON only. Do not include any other text or markdown formatting.
Each recipe is an object with:
- `recipeName`: The name of the dish.
- `description`: A short, gentle, and encouraging description highlighting its benefits.
- `calories`: Estimated total calories for the entire recipe (an integer), not per serving.
- `servings`: The number of people the recipe serves (an integer, at least 1).
- `mealType`: One of "breakfast", "lunch" or "dinner".
- `ingredients`: A list of objects with `name`, numeric `quantity` and `unit` (e.g. "g", "ml", "cup", "tbsp").
- `instructions`: Step-by-step cooking instructions, one string per step.
"""

CALORIE_MODE_BRIEFS = {
    CalorieMode.LOW_CAL: "low-calorie and suitable for weight loss",
    CalorieMode.NUTRITIONAL: "balanced and nutrient-dense, with plenty of protein, fibre and vegetables",
    CalorieMode.TREAT_DAY: "an indulgent treat-day dish where flavour comes before calories",
}


def new_recipe_id():
    return uuid.uuid4().hex


class RecipeAgent:
    """Generates and adjusts recipes through an injected transport.

    `transport` is anything with ``complete(prompt, mode, system_instruction=None) -> str``;
    in production that is a ModelManager.
    """

    def __init__(self, transport, id_factory=new_recipe_id):
        self.transport = transport
        self.id_factory = id_factory

    def construct_generate_prompt(self, meal_type, calorie_mode, mood=None):
        meal_type = MealType(meal_type)
        calorie_mode = CalorieMode(calorie_mode)

        prompt = f"""
        Generate {RECIPES_PER_BATCH} different, creative recipes. Each one should be {CALORIE_MODE_BRIEFS[calorie_mode]}.
        The recipes should be simple, delicious, and come from diverse global cuisines to avoid common flavor profiles.
        The meal type must be '{meal_type.value}'.
        """
        if mood and mood.strip():
            prompt += f' The recipes must also fit the following theme, ingredients, or mood: "{mood.strip()}".'

        prompt += f"\n\nYour response MUST be only a JSON array of exactly {RECIPES_PER_BATCH} recipe objects."
        return prompt

    def construct_adjust_prompt(self, recipe, instruction):
        # The photo is the user's, not the model's business
        current = recipe.model_dump(mode="json", by_alias=True, exclude={"id", "user_image"}, exclude_none=True)
        return f"""
        You are a recipe modification assistant. Your task is to modify a given JSON recipe based on a user's request and return the complete, updated recipe.

        Original Recipe (JSON format):
        {json.dumps(current, indent=2)}

        User's Adjustment Request: "{instruction}"

        Instructions:
        1. Modify the recipe (name, description, ingredients, instructions) to fulfill the user's request.
        2. Recalculate the total 'calories' based on the ingredient changes.
        3. Keep 'servings' and 'mealType' the same unless explicitly requested.
        4. Your entire response MUST be ONLY the updated recipe as a single JSON object.
        """

    def generate(self, meal_type, calorie_mode=CalorieMode.LOW_CAL, mood=None):
        """Returns RECIPES_PER_BATCH fresh recipes, each with a new id."""
        prompt = self.construct_generate_prompt(meal_type, calorie_mode, mood)
        raw = self.transport.complete(prompt, Mode.GENERATE, system_instruction=SYSTEM_INSTRUCTION)
        recipes = normalize(raw, Mode.GENERATE)
        return [r.model_copy(update={"id": self.id_factory()}) for r in recipes]

    def adjust(self, recipe, instruction):
        """Returns the modified recipe under the original recipe's id."""
        if not isinstance(recipe, Recipe):
            raise TypeError("adjust expects a validated Recipe")
        if not instruction or not instruction.strip():
            raise ValueError("Adjustment instruction must not be empty.")

        prompt = self.construct_adjust_prompt(recipe, instruction.strip())
        raw = self.transport.complete(prompt, Mode.ADJUST, system_instruction=SYSTEM_INSTRUCTION)
        adjusted = normalize(raw, Mode.ADJUST)

        if adjusted.id is not None and adjusted.id != recipe.id:
            log.debug("Discarding model-supplied id %r for recipe %s", adjusted.id, recipe.id)
        return adjusted.model_copy(update={"id": recipe.id, "user_image": recipe.user_image})
