import copy
import json

import pytest

PROVIDER_ENV_VARS = [
    "GEMINI_API_KEY", "API_KEY", "OPENAI_API_KEY", "ANTHROPIC_API_KEY", "XAI_API_KEY",
    "MOODBITE_MODEL", "MOODBITE_TEMPERATURE",
]

BASE_RECIPE = {
    "recipeName": "Lemon Herb Quinoa Bowl",
    "description": "A bright, protein-packed bowl that keeps you full.",
    "calories": 820,
    "servings": 2,
    "mealType": "lunch",
    "ingredients": [
        {"name": "quinoa", "quantity": 150, "unit": "g"},
        {"name": "lemon juice", "quantity": 0.5, "unit": "cup"},
        {"name": "chickpeas", "quantity": 1, "unit": "can"},
    ],
    "instructions": [
        "Rinse and cook the quinoa.",
        "Whisk the lemon juice with herbs.",
        "Toss everything together and serve.",
    ],
}


def make_recipe_dict(**overrides):
    d = copy.deepcopy(BASE_RECIPE)
    d.update(overrides)
    return d


def make_batch(n=3):
    return [make_recipe_dict(recipeName=f"Recipe {i}") for i in range(1, n + 1)]


class FakeTransport:
    """Stands in for ModelManager: returns queued raw texts and records calls."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def complete(self, prompt, mode, system_instruction=None):
        self.calls.append({"prompt": prompt, "mode": mode, "system_instruction": system_instruction})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def recipe_dict():
    return make_recipe_dict()


@pytest.fixture
def batch_text():
    return json.dumps(make_batch())


@pytest.fixture
def clean_env(monkeypatch):
    for name in PROVIDER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
