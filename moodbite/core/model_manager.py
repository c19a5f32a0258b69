import os
import re
import time
import logging

import google.genai as genai

from moodbite.core.schemas import Mode, response_schema_for

log = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TEMPERATURE = 0.9
REDACTED = "[REDACTED]"


class TransportError(Exception):
    """The upstream LLM call failed (network, non-2xx, missing credential, empty reply)."""

    def __init__(self, message, provider=None, status_code=None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)


def _status_of(exc):
    for attr in ("status_code", "code"):
        val = getattr(exc, attr, None)
        if isinstance(val, int):
            return val
    return None

# --- PROVIDER WRAPPERS ---
# Each provider turns (system instruction, prompt, mode) into the raw text the
# model produced. None of them parse JSON; that is the normalizer's job.

class GeminiProvider:
    name = "google"

    def __init__(self, api_key):
        self.client = genai.Client(api_key=api_key)

    def ping(self, model_id):
        self.client.models.generate_content(
            model=model_id,
            contents="Hello",
            config=genai.types.GenerateContentConfig(max_output_tokens=5)
        )
        return True

    def complete(self, model_id, system_instruction, user_prompt, mode, temperature=DEFAULT_TEMPERATURE):
        response = self.client.models.generate_content(
            model=model_id,
            contents=user_prompt,
            config=genai.types.GenerateContentConfig(
                system_instruction=system_instruction,
                response_mime_type="application/json",
                response_schema=response_schema_for(mode),
                temperature=temperature
            )
        )
        return response.text


class OpenAIProvider:
    name = "openai"

    def __init__(self, api_key, base_url=None):
        from openai import OpenAI
        self.client = OpenAI(api_key=api_key, base_url=base_url)

    def ping(self, model_id):
        self.client.chat.completions.create(
            model=model_id,
            messages=[{"role": "user", "content": "Reply OK"}],
            max_tokens=5
        )
        return True

    def complete(self, model_id, system_instruction, user_prompt, mode, temperature=DEFAULT_TEMPERATURE):
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": user_prompt})

        # json_object mode only allows a top-level object, so batches come back
        # inside an envelope like {"recipes": [...]}
        completion = self.client.chat.completions.create(
            model=model_id,
            messages=messages,
            response_format={"type": "json_object"},
            temperature=temperature,
        )
        return completion.choices[0].message.content


class AnthropicProvider:
    name = "anthropic"

    def __init__(self, api_key):
        from anthropic import Anthropic
        self.client = Anthropic(api_key=api_key)

    def ping(self, model_id):
        self.client.messages.create(
            model=model_id,
            max_tokens=10,
            messages=[{"role": "user", "content": "Reply OK"}]
        )
        return True

    def complete(self, model_id, system_instruction, user_prompt, mode, temperature=DEFAULT_TEMPERATURE):
        kwargs = {}
        if system_instruction:
            kwargs["system"] = system_instruction
        message = self.client.messages.create(
            model=model_id,
            max_tokens=4096,
            temperature=min(temperature, 1.0),
            messages=[{"role": "user", "content": user_prompt}],
            **kwargs
        )
        return "".join(block.text for block in message.content if block.type == "text")


DEFAULT_MODELS = [
    # Google
    {"id": "gemini-2.5-flash", "name": "Gemini 2.5 Flash", "provider": "google", "recommended": True, "description": "Fast and reliable. The default recipe chef."},
    {"id": "gemini-2.5-pro", "name": "Gemini 2.5 Pro", "provider": "google", "description": "Deeper reasoning for tricky adjustments."},
    {"id": "gemini-2.5-flash-lite", "name": "Gemini 2.5 Flash-Lite", "provider": "google", "description": "Cheapest and quickest."},

    # OpenAI
    {"id": "gpt-4o", "name": "GPT-4o", "provider": "openai", "recommended": True, "description": "Strong general model."},
    {"id": "gpt-4o-mini", "name": "GPT-4o Mini", "provider": "openai", "description": "Fast, affordable, and capable."},

    # Anthropic
    {"id": "claude-3-5-sonnet-20241022", "name": "Claude 3.5 Sonnet", "provider": "anthropic", "recommended": True, "description": "Great at following formatting rules."},
    {"id": "claude-3-5-haiku-20241022", "name": "Claude 3.5 Haiku", "provider": "anthropic", "description": "The fastest Claude model."},

    # xAI
    {"id": "grok-2", "name": "Grok 2", "provider": "xai", "description": "Latest from xAI."},
]


class ModelManager:
    """Routes a completion request to the provider that serves the chosen model.

    Keys are looked up in order: explicit `user_keys`, the current environment,
    then `original_env` (the environment captured before .env was loaded).
    """

    ENV_KEYS = {
        "google": ("GEMINI_API_KEY", "API_KEY"),
        "openai": ("OPENAI_API_KEY",),
        "anthropic": ("ANTHROPIC_API_KEY",),
        "xai": ("XAI_API_KEY",),
    }

    def __init__(self, config=None, original_env=None, user_keys=None, providers=None):
        self.config = config or {}
        self.original_env = original_env
        self.user_keys = user_keys or {}
        self.health = {}
        self.core_model = self.config.get("core_model") or os.environ.get("MOODBITE_MODEL") or DEFAULT_MODEL
        self.temperature = float(self.config.get("temperature") or os.environ.get("MOODBITE_TEMPERATURE") or DEFAULT_TEMPERATURE)

        def get_initial(provider):
            # 1. User Preference
            val = self.user_keys.get(provider)
            if val:
                return val

            # 2. System Environment, then the pre-dotenv snapshot
            for name in self.ENV_KEYS[provider]:
                val = os.environ.get(name)
                if not val or val == f"${{{name}}}":  # self-referencing shadow
                    if self.original_env and self.original_env.get(name):
                        val = self.original_env[name]
                if val:
                    return val
            return None

        self.keys = {p: self._resolve_key(get_initial(p)) for p in self.ENV_KEYS}

        if providers is not None:
            self.providers = dict(providers)
            return

        self.providers = {}
        factories = {
            "google": GeminiProvider,
            "openai": OpenAIProvider,
            "anthropic": AnthropicProvider,
            "xai": lambda key: OpenAIProvider(key, base_url="https://api.x.ai/v1"),
        }
        for provider_name, factory in factories.items():
            key = self.keys[provider_name]
            if not key:
                continue
            try:
                self.providers[provider_name] = factory(key)
            except Exception as e:
                log.error("Error initializing %s provider: %s", provider_name, self.redact(str(e)))

    def _get_env(self, name):
        if self.original_env and self.original_env.get(name):
            return self.original_env[name]
        return os.environ.get(name)

    def _resolve_key(self, key_string):
        if not key_string:
            return None

        # 1. ${VAR} pointer
        match = re.search(r'\$\{(.+?)\}', key_string)
        if match:
            env_name = match.group(1)
            val = self._get_env(env_name)
            # Same string back, empty, or still a pointer: expansion failed
            if not val or val == key_string or val == f'${{{env_name}}}':
                log.debug("Resolution failed for pointer %s", key_string)
                return None
            return val

        # 2. Bare environment variable name
        if re.match(r'^[A-Z0-9_]+$', key_string):
            val = self._get_env(key_string)
            if val and val != key_string:
                return val
            if not key_string.startswith("AI"):  # Gemini keys start with AI
                log.debug("String '%s' looks like a pointer but was not found in env.", key_string)
                return None

        return key_string

    def redact(self, text):
        for key in self.keys.values():
            if key:
                text = text.replace(key, REDACTED)
        return text

    def get_available_models(self):
        """Returns the model catalog with locked/health status."""
        models = []
        for m in DEFAULT_MODELS:
            m = dict(m)
            m["locked"] = m["provider"] not in self.providers
            m["health"] = self.health.get(m["id"], {"status": "unchecked"})
            if m["health"]["status"] in ("error", "auth_error", "rate_limit"):
                m["recommended"] = False
            if m["id"] == self.core_model:
                m["is_core"] = True
            models.append(m)
        return models

    def set_core_model(self, model_id):
        self._get_provider_for_model(model_id)
        self.core_model = model_id

    def get_core_model_id(self):
        return self.core_model

    def _get_provider_for_model(self, model_id):
        target_model = next((m for m in DEFAULT_MODELS if m["id"] == model_id), None)
        if not target_model:
            raise TransportError(f"Unknown model: {model_id}")

        provider_name = target_model["provider"]
        if provider_name not in self.providers:
            raise TransportError(f"Provider {provider_name} is not configured (missing API key).", provider=provider_name)
        return provider_name, self.providers[provider_name]

    def test_connection(self, model_id):
        log.info("Testing connectivity for %s...", model_id)
        try:
            _, provider = self._get_provider_for_model(model_id)
            provider.ping(model_id)
            status = "ok"
            msg = "Connected"
        except Exception as e:
            msg = self.redact(str(e))
            log.warning("Connection test failed for %s: %s", model_id, msg)
            msg_lower = msg.lower()
            if "429" in msg or "quota" in msg_lower or "resource_exhausted" in msg_lower:
                status = "rate_limit"
            elif "key" in msg_lower or "auth" in msg_lower or "401" in msg:
                status = "auth_error"
            else:
                status = "error"

        self.health[model_id] = {
            "status": status,
            "msg": msg,
            "last_checked": time.time()
        }
        return status, msg

    def complete(self, prompt, mode, system_instruction=None, model_id=None):
        """Sends one prompt to the model and returns its raw text. Never parses it."""
        mode = Mode(mode)
        model_id = model_id or self.get_core_model_id()
        provider_name, provider = self._get_provider_for_model(model_id)

        log.info("Requesting %s completion from %s via %s", mode.value, model_id, provider_name)
        try:
            text = provider.complete(model_id, system_instruction, prompt, mode, temperature=self.temperature)
        except Exception as e:
            raise TransportError(
                f"{provider_name} request failed: {self.redact(str(e))}",
                provider=provider_name,
                status_code=_status_of(e),
            ) from None

        if not text or not text.strip():
            raise TransportError("API returned an empty text response.", provider=provider_name)
        return text
