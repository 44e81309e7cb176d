# comicsmith/features/panels/prompt.py
from typing import List, Optional

SYSTEM = (
    "You are a comic book storyboard artist. "
    "Return STRICT JSON only: a JSON array of panel objects with 'panelId', 'description', "
    "'cameraAngle' and 'contextImageRefs'. No extra text, no markdown."
)


def build_panels_prompt(
    *,
    story_context: str,
    genre: Optional[str],
    total_panels: int,
    panels_per_page: List[int],
    camera_angles: List[str],
) -> str:
    pages = ", ".join(f"page {i}: {n} panel{'s' if n > 1 else ''}" for i, n in enumerate(panels_per_page, start=1))
    angles = "\n".join(f"  panel{i}: {a}" for i, a in enumerate(camera_angles[:total_panels], start=1))
    return f"""
Break the story below into exactly {total_panels} comic panels.

**STORY:** "{story_context}"
**GENRE:** "{genre or 'general fiction'}"
**PAGES:** {pages}

**RULES:**
* panel1 is the COVER: a striking establishing image that introduces the main characters. No story beat yet.
* Every description is a single visual scene an illustrator can draw: who is where, doing what, lighting, mood.
* Describe characters by appearance every time they appear; never rely on names alone.
* Use these camera angles in order:
{angles}
* contextImageRefs lists the images the illustrator should keep consistent with, at most 4:
  - "char_1", "char_2" for the two main characters
  - "panel_N" for an earlier panel N showing the same place or moment
* panel1 must reference "char_1" and "char_2".

**JSON SCHEMA:**
```json
[
  {{"panelId": "panel1", "description": "...", "cameraAngle": "establishing-shot", "contextImageRefs": ["char_1", "char_2"]}},
  {{"panelId": "panel2", "description": "...", "cameraAngle": "medium-shot", "contextImageRefs": ["panel_1", "char_1"]}}
]
```""".strip()
