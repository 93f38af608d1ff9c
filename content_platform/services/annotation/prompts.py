"""
System instructions and user messages sent to the annotation service.
"""

from typing import Iterable, Optional, Sequence, Tuple

from content_platform.config import PHISHING_CUE_TYPES


def educational_system_prompt(allowed_tags: Iterable[str]) -> str:
    allowed_tags_list = ", ".join(allowed_tags)
    return (
        "You are an expert at analyzing educational content and identifying key assessment elements. "
        "Your task is to SELECTIVELY add data-tag attributes ONLY to the most important interactive elements "
        "that represent core learning objectives or assessments.\n\n"
        "ALLOWED TAGS (use ONLY these tags):\n"
        f"{allowed_tags_list}\n\n"
        "CRITICAL RULES - FOLLOW EXACTLY:\n"
        "1. ONLY add data-tag attributes to interactive elements (inputs, buttons, selects, textareas, clickable elements)\n"
        "2. Tag values MUST be one of the allowed tags listed above - use ONLY these exact tag names\n"
        "3. Make ZERO other changes to the HTML - preserve ALL:\n"
        "   - Exact formatting, spacing, and indentation\n"
        "   - All existing attributes exactly as written\n"
        "   - All content, text, and structure\n"
        "   - All comments (including placeholder comments), placeholder tokens, and styles\n"
        "   - Character encoding and special characters\n"
        "4. Return the COMPLETE HTML exactly as provided, with ONLY data-tag attributes added where appropriate\n"
        "5. Do not fix, clean, or optimize the HTML in any way\n"
        "6. Do not include explanations, comments, or markdown - return ONLY the raw HTML\n"
        "7. If this appears to be a partial HTML chunk (missing opening/closing tags), that's expected - process it as-is"
    )


def educational_user_prompt(html: str) -> str:
    return (
        "Add data-tag attributes to interactive elements in this HTML. Make NO other changes whatsoever. "
        "Return ONLY the HTML with data-tag attributes added:\n\n" + html
    )


def _cue_documentation(
    cue_types: Sequence[Tuple[str, Sequence[Tuple[str, str]]]],
    allowed: Optional[Iterable[str]] = None,
) -> str:
    allowed_set = set(allowed) if allowed is not None else None
    lines = []
    for type_name, cues in cue_types:
        entries = [(name, criteria) for name, criteria in cues if allowed_set is None or name in allowed_set]
        if not entries:
            continue
        lines.append(f"\n{type_name}:")
        for name, criteria in entries:
            lines.append(f"  - {name}: {criteria}")
    return "\n".join(lines) + "\n"


def phishing_system_prompt(allowed_cues: Iterable[str]) -> str:
    return (
        "You are an expert at analyzing phishing emails using the NIST Phishing Scale methodology. "
        "Your task is to identify phishing indicators and add data-cue attributes to mark them.\n\n"
        "PHISHING CUE TYPES AND CRITERIA:\n"
        + _cue_documentation(PHISHING_CUE_TYPES, allowed_cues)
        + "\n"
        "NIST Phish Scale Difficulty Ratings:\n"
        "- Least Difficult (1): Multiple obvious red flags, amateur mistakes, very easy to detect\n"
        "- Moderately Difficult (2): Some red flags but requires closer inspection, decent attempt\n"
        "- Very Difficult (3): Sophisticated, few obvious indicators, requires expert knowledge to detect\n\n"
        "Rules:\n"
        "1. Add data-cue attributes to elements containing phishing indicators\n"
        "2. Use format: data-cue=\"cue-name\" using the exact cue names from the list above "
        "(e.g., data-cue=\"sense-of-urgency\")\n"
        "3. Use ONLY the cue names provided in the list - these are the standardized NIST Phish Scale indicators\n"
        "4. On the FIRST line, output: DIFFICULTY:X (where X is 1, 2, or 3)\n"
        "5. Then output the complete modified HTML with data-cue attributes added\n"
        "6. Do not modify the content or structure, only add data-cue attributes; keep placeholder "
        "comments and tokens exactly as they are\n"
        "7. Do not include any other explanations, comments, or markdown formatting\n"
        "8. Only add cues where the criteria are clearly met in the email content"
    )


def phishing_user_prompt(html: str) -> str:
    return (
        "Add data-cue attributes to phishing indicators in this email using the standardized cue names, "
        "and assess its difficulty level. "
        "First line must be DIFFICULTY:X (1, 2, or 3), then the modified HTML:\n\n" + html
    )
