# comicsmith/features/placement/prompt.py
from typing import List, Optional, Tuple

SYSTEM = (
    "You are a professional comic book letterer. You look at a panel and decide where text goes. "
    "Return STRICT JSON only: an object with a 'placements' array. No extra text, no markdown."
)


def build_placement_prompt(
    *,
    width: int,
    height: int,
    description: str,
    title: Optional[str],
    narration: Optional[str],
    dialogue: List[Tuple[str, str]],
) -> str:
    items: List[str] = []
    if title:
        items.append(f'* TITLE: "{title}"')
    if narration:
        items.append(f'* NARRATION: "{narration}"')
    for speaker, text in dialogue:
        items.append(f'* SPEECH by {speaker}: "{text}"')
    texts = "\n".join(items)
    return f"""
The panel image is {width}x{height} pixels (origin top-left). It shows: {description}

**TEXT TO PLACE:**
{texts}

**RULES:**
* Never cover faces, hands or the main action. Prefer sky, walls, floor and empty background.
* position is the TOP-LEFT corner of the bubble or box, in pixels, inside the image.
* Every SPEECH needs a tail: the point (in pixels) near the speaker's mouth the bubble points to.
* Narration goes in a corner box (usually top-left) and has no tail.
* readingOrder follows comic reading order: left to right, top to bottom, starting at 1.

**JSON SCHEMA:**
```json
{{"placements": [
  {{"type": "narration", "text": "...", "position": {{"x": 20, "y": 20}}, "readingOrder": 1}},
  {{"type": "speech", "text": "...", "speaker": "Name", "position": {{"x": 400, "y": 60}}, "tail": {{"x": 520, "y": 380}}, "readingOrder": 2}}
]}}
```""".strip()
