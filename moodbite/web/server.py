import os
import logging

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

# CAPTURE ORIGINAL SYSTEM ENVIRONMENT before load_dotenv shadows it
original_env = os.environ.copy()

from moodbite.core.agent import RecipeAgent
from moodbite.core.cookbook_manager import CookbookManager
from moodbite.core.model_manager import ModelManager, TransportError
from moodbite.core.normalizer import NormalizationError, normalize
from moodbite.core.scaling import format_ingredient, scale_recipe
from moodbite.core.schemas import CalorieMode, Mode
from moodbite.core.validator import ValidationError, validate_recipe

load_dotenv()

log = logging.getLogger(__name__)


def error_response(message, status, **extra):
    body = {"error": message}
    body.update(extra)
    return jsonify(body), status


def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object.")
    return data


def saved_payload(recipe):
    d = recipe.to_wire()
    d["displayIngredients"] = [format_ingredient(i) for i in recipe.ingredients]
    return d


def create_app(agent=None, cookbook=None, model_manager=None):
    """Builds the Flask app. Collaborators are injected so tests never touch the network."""
    app = Flask(__name__)
    # Secret key needed for sessions
    app.secret_key = os.environ.get("FLASK_SECRET", "dev-secret-key-change-me")

    if agent is None:
        model_manager = model_manager or ModelManager(original_env=original_env)
        agent = RecipeAgent(model_manager)
    cookbook = cookbook if cookbook is not None else CookbookManager()

    # --- ERROR MAPPING ---
    @app.errorhandler(TransportError)
    def handle_transport_error(e):
        log.error("Transport error: %s", e)
        return error_response(str(e), 502, kind="transport")

    @app.errorhandler(NormalizationError)
    def handle_normalization_error(e):
        log.error("Normalization error: %s", e)
        return error_response(str(e), 502, kind="normalization", details=e.to_dict())

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return error_response(str(e), 422, kind="validation", details=e.to_dict())

    @app.errorhandler(ValueError)
    def handle_bad_request(e):
        return error_response(str(e), 400)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return error_response(e.description, e.code)

    # --- HEALTH / MODELS ---
    @app.route('/health')
    def health():
        return jsonify({"status": "ok"})

    @app.route('/api/models')
    def list_models():
        if model_manager is None:
            return error_response("Model catalog unavailable", 404)
        return jsonify({"models": model_manager.get_available_models(), "core_model": model_manager.get_core_model_id()})

    @app.route('/api/models/test', methods=['POST'])
    def test_model():
        if model_manager is None:
            return error_response("Model catalog unavailable", 404)
        model_id = json_body().get('model_id')
        if not model_id:
            raise ValueError("Missing model_id in request body")
        status, msg = model_manager.test_connection(model_id)
        return jsonify({"status": status, "message": msg})

    # --- RECIPES ---
    @app.route('/api/recipes/generate', methods=['POST'])
    def generate_recipes():
        data = json_body()
        meal_type = data.get('mealType')
        if not meal_type:
            raise ValueError("Missing mealType in request body")
        calorie_mode = data.get('calorieMode') or CalorieMode.LOW_CAL.value
        mood = data.get('mood')
        if mood is not None and not isinstance(mood, str):
            raise ValueError("mood must be a string")

        recipes = agent.generate(meal_type, calorie_mode, mood)
        return jsonify({"recipes": [r.to_wire() for r in recipes]})

    @app.route('/api/recipes/adjust', methods=['POST'])
    def adjust_recipe():
        data = json_body()
        recipe = validate_recipe(data.get('recipe'))
        instruction = data.get('instruction')
        if not isinstance(instruction, str):
            raise ValueError("Missing instruction in request body")

        adjusted = agent.adjust(recipe, instruction)
        return jsonify(adjusted.to_wire())

    @app.route('/api/complete', methods=['POST'])
    def complete():
        """Proxy convention: free-form prompt in, normalized recipe JSON out (no ids)."""
        data = json_body()
        prompt = data.get('prompt')
        if not prompt:
            raise ValueError("Missing prompt in request body")
        mode = Mode(data.get('mode') or Mode.GENERATE.value)

        raw = agent.transport.complete(prompt, mode)
        result = normalize(raw, mode)
        if mode is Mode.GENERATE:
            return jsonify([r.to_wire() for r in result])
        return jsonify(result.to_wire())

    # --- SAVED RECIPES ---
    @app.route('/api/saved', methods=['GET', 'POST'])
    def saved_recipes():
        if request.method == 'POST':
            recipe = validate_recipe(json_body())
            return jsonify(saved_payload(cookbook.save(recipe))), 201
        return jsonify({"recipes": [saved_payload(r) for r in cookbook.list_recipes()]})

    @app.route('/api/saved/<recipe_id>', methods=['GET', 'PATCH', 'DELETE'])
    def saved_recipe(recipe_id):
        try:
            if request.method == 'DELETE':
                cookbook.remove(recipe_id)
                return "", 204

            if request.method == 'GET':
                raw_servings = request.args.get('servings')
                if raw_servings is None:
                    return jsonify(saved_payload(cookbook.get(recipe_id)))
                try:
                    servings = int(raw_servings)
                except ValueError:
                    raise ValueError("servings must be an integer") from None
                # preview only, the stored serving count is untouched
                return jsonify(saved_payload(scale_recipe(cookbook.get_original(recipe_id), servings)))

            data = json_body()
            recipe = None
            if 'servings' in data:
                servings = data['servings']
                if isinstance(servings, bool) or not isinstance(servings, int):
                    raise ValueError("servings must be an integer")
                recipe = cookbook.update_servings(recipe_id, servings)
            if 'servingsDelta' in data:
                delta = data['servingsDelta']
                if isinstance(delta, bool) or not isinstance(delta, int):
                    raise ValueError("servingsDelta must be an integer")
                recipe = cookbook.adjust_servings(recipe_id, delta)
            if 'userImage' in data:
                image = data['userImage']
                if image is not None and not isinstance(image, str):
                    raise ValueError("userImage must be a string or null")
                recipe = cookbook.attach_photo(recipe_id, image)
            if recipe is None:
                recipe = cookbook.get(recipe_id)
            return jsonify(saved_payload(recipe))
        except KeyError:
            return error_response(f"No saved recipe with id {recipe_id}", 404)

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = create_app()
    app.run(host='0.0.0.0', port=int(os.environ.get("PORT", 5005)), debug=True)
