import threading
import logging

from moodbite.core.scaling import clamp_servings, scale_recipe

log = logging.getLogger(__name__)


class CookbookManager:
    """Saved recipes, newest first, held in process memory.

    Each entry keeps the recipe exactly as generated plus the serving count the
    user picked, so rescaling always starts from the original quantities.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries = {}  # str(id) -> {"recipe": Recipe, "servings": int}
        self._order = []    # ids, newest first

    def _entry(self, recipe_id):
        try:
            return self._entries[str(recipe_id)]
        except KeyError:
            raise KeyError(f"No saved recipe with id {recipe_id}") from None

    def _view(self, entry):
        return scale_recipe(entry["recipe"], entry["servings"])

    def save(self, recipe):
        """Saves a recipe. Saving an id that is already present is a no-op."""
        if recipe.id is None:
            raise ValueError("Only recipes with an id can be saved.")
        key = str(recipe.id)  # URL paths only ever carry strings
        with self._lock:
            if key not in self._entries:
                self._entries[key] = {"recipe": recipe, "servings": recipe.servings}
                self._order.insert(0, key)
                log.info("Saved recipe %s (%s)", recipe.id, recipe.recipe_name)
            return self._view(self._entries[key])

    def list_recipes(self):
        with self._lock:
            return [self._view(self._entries[rid]) for rid in self._order]

    def get(self, recipe_id):
        with self._lock:
            return self._view(self._entry(recipe_id))

    def get_original(self, recipe_id):
        with self._lock:
            return self._entry(recipe_id)["recipe"]

    def update_servings(self, recipe_id, servings):
        with self._lock:
            entry = self._entry(recipe_id)
            entry["servings"] = clamp_servings(servings)
            return self._view(entry)

    def adjust_servings(self, recipe_id, delta):
        with self._lock:
            entry = self._entry(recipe_id)
            entry["servings"] = clamp_servings(entry["servings"] + delta)
            return self._view(entry)

    def attach_photo(self, recipe_id, image_ref):
        with self._lock:
            entry = self._entry(recipe_id)
            entry["recipe"] = entry["recipe"].model_copy(update={"user_image": image_ref or None})
            return self._view(entry)

    def remove(self, recipe_id):
        with self._lock:
            self._entry(recipe_id)
            del self._entries[str(recipe_id)]
            self._order.remove(str(recipe_id))
