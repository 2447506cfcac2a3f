"""Seed default LLM settings and a sample form.

Usage:
    python scripts/seed_defaults.py [--no-form]

Writes every key of DEFAULT_SETTINGS to the settings table (existing keys are
overwritten) and, unless --no-form is given, creates the sample
"Event Feedback Survey" form.
"""

import argparse

from formchat.core.schemas_forms import FormInput, PromptInput
from formchat.core.schemas_settings import DEFAULT_SETTINGS
from formchat.db import forms as forms_db
from formchat.db import settings as settings_db

SAMPLE_FORM = FormInput(
    title="Event Feedback Survey",
    description=(
        "Please share your thoughts about our recent tech conference. "
        "Your feedback helps us improve future events."
    ),
    output_prompt=(
        "Summarize this attendee's feedback in three bullet points: "
        "overall impression, highlight, and top improvement."
    ),
    prompts=[
        PromptInput(
            question_text="What did you think of the event overall?",
            variable_name="overall_experience",
            validation_criteria=(
                "Provide a detailed response with at least 2-3 specific aspects of the event "
                "that influenced your experience."
            ),
        ),
        PromptInput(
            question_text="Which session or workshop was most valuable to you and why?",
            variable_name="best_session",
            validation_criteria="Name the specific session and explain what made it valuable to you.",
        ),
        PromptInput(
            question_text="How could we improve the event for next year?",
            variable_name="improvement_suggestions",
            validation_criteria="Provide at least one specific suggestion for improvement.",
        ),
    ],
)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed default settings and a sample form.")
    parser.add_argument("--no-form", action="store_true", help="Only seed settings")
    args = parser.parse_args()

    keys = settings_db.update_settings(DEFAULT_SETTINGS)
    print(f"Seeded {len(keys)} settings")

    if not args.no_form:
        form_id = forms_db.create_form(SAMPLE_FORM)
        print(f"Created sample form {form_id}")


if __name__ == "__main__":
    main()
