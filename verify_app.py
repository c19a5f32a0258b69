import sys
import os

print("Verifying MoodBite integrity...")

try:
    # Add project root to path
    sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__))))

    print("Checking core modules...")
    import moodbite.core.schemas
    import moodbite.core.validator
    import moodbite.core.normalizer
    import moodbite.core.model_manager
    import moodbite.core.agent
    import moodbite.core.cookbook_manager

    print("Checking provider libraries...")
    import google.genai
    import openai
    import anthropic

    print("Checking server module...")
    from moodbite.web.server import create_app
    create_app()

    print("Logic Check Passed: No Syntax Errors.")
    sys.exit(0)
except Exception as e:
    import traceback
    traceback.print_exc()
    print(f"Verification Failed: {e}")
    sys.exit(1)
