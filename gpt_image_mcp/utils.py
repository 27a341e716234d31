import re
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence, Tuple

from .schemas import ImageOutcome

FILENAME_PREFIX = "gpt_image_1"
MAX_PROMPT_SLUG_LENGTH = 50


def generate_image_filename(prompt: str, index: int, now: Optional[datetime] = None) -> str:
    """
    Build a filesystem-safe file name for the ``index``-th image of a prompt.

    Args:
        prompt (str): Prompt the image was generated from.
        index (int): 1-based position of the image in its batch.
        now (datetime, optional): Instant used for the timestamp. Defaults to the current UTC time.

    Returns:
        str: ``gpt_image_1_<prompt>_<index>_<timestamp>.png``
    """
    safe_prompt = re.sub(r"[^a-z0-9\s]", "", prompt.lower())
    safe_prompt = re.sub(r"\s+", "_", safe_prompt)[:MAX_PROMPT_SLUG_LENGTH]

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    timestamp = re.sub(r"[:.]", "-", now.strftime("%Y-%m-%dT%H:%M:%S.%f")) + "Z"

    return f"{FILENAME_PREFIX}_{safe_prompt}_{index}_{timestamp}.png"


def format_image_details(outcome: ImageOutcome) -> str:
    details = f"Image {outcome.index}:"
    if outcome.path:
        details += f"\n  Local Path: {outcome.path}"
    elif outcome.error:
        details += f"\n  Save Error: {outcome.error}"
    if outcome.revised_prompt:
        details += f"\n  Revised Prompt: {outcome.revised_prompt}"
    return details


def build_batch_report(
    model_label: str,
    parameters: Iterable[Tuple[str, str]],
    outcomes: Sequence[ImageOutcome],
    images_dir_name: str = "images",
) -> str:
    """
    Render the text returned to the MCP client for one generation call.

    Args:
        model_label (str): Name of the model (and mode) used in the heading.
        parameters (Iterable[Tuple[str, str]]): Echoed request parameters as label/value pairs.
        outcomes (Sequence[ImageOutcome]): Per-image outcomes in upstream order.
        images_dir_name (str): Directory name mentioned in the closing note.

    Returns:
        str: The multi-line report.
    """
    lines = [f"Successfully generated {len(outcomes)} image(s) using {model_label}:", ""]
    lines.extend(f"{label}: {value}" for label, value in parameters)
    lines.extend(["", "Generated Images:"])
    lines.append("\n\n".join(format_image_details(outcome) for outcome in outcomes))
    lines.append("")

    if any(outcome.saved for outcome in outcomes):
        lines.append(f"Images have been saved to the local '{images_dir_name}' directory.")
    else:
        lines.append("Note: Local save failed, but images were generated successfully.")

    return "\n".join(lines)
