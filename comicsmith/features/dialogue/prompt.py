# comicsmith/features/dialogue/prompt.py
from typing import List, Tuple

SYSTEM = (
    "You are a comic book letterer and dialogue writer. "
    "Return STRICT JSON only: a JSON array with one object per panel. No extra text, no markdown."
)


def build_dialogue_prompt(
    *,
    story_context: str,
    genre: str,
    tone: str,
    characters: List[Tuple[str, str]],
    panels: List[Tuple[str, str]],
) -> str:
    cast = "\n".join(f"* {name} ({cid})" for cid, name in characters)
    scenes = "\n".join(f"* {pid}: {desc}" for pid, desc in panels)
    return f"""
Write the text for every panel of this comic.

**STORY:** "{story_context}"
**GENRE:** "{genre}"
**TONE:** "{tone}"

**CHARACTERS:**
{cast}

**PANELS:**
{scenes}

**RULES:**
* panel1 is the COVER: give it a short, punchy "title" and nothing else (no dialogue, no narration).
* At most 2 dialogue lines per panel, each under 20 words, spoken by the characters above (use their names).
* A panel has dialogue OR narration, never both. Use narration sparingly, at most 15 words.
* Some panels can be silent: empty dialogue and no narration.
* soundEffects are short onomatopoeia ("CRASH!"), only where the action calls for it.

**JSON SCHEMA:**
```json
[
  {{"panelId": "panel1", "title": "Comic Title", "dialogue": [], "narration": null, "soundEffects": []}},
  {{"panelId": "panel2", "dialogue": [{{"speaker": "Name", "text": "Line", "type": "speech"}}], "narration": null, "soundEffects": []}}
]
```""".strip()
