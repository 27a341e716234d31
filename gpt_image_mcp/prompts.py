from typing import Optional


def get_style_enhanced_prompt(prompt: str, style: Optional[str] = None) -> str:
    """Append a style clause to the prompt. Blank styles leave it untouched."""
    if style is None or not style.strip():
        return prompt
    return f"{prompt}, in {style.strip()} style"
