# comicsmith/features/characters/prompt.py
from typing import List

SYSTEM = (
    "You are a comic book character designer. "
    "Return STRICT JSON only: a JSON array of objects with 'id', 'name' and 'description'. "
    "No extra text, no markdown."
)


def build_characters_prompt(*, story_context: str, count: int, panel_descriptions: List[str]) -> str:
    scenes = "\n".join(f"* {d}" for d in panel_descriptions)
    ids = ", ".join(f'"char_{i}"' for i in range(1, count + 1))
    return f"""
Design exactly {count} main characters for this comic.

**STORY:** "{story_context}"

**SCENES:**
{scenes}

**PRIMARY DIRECTIVE:**
For each character write a visual description an illustrator can reuse in every panel:
age, build, face, hair, clothing, colours and one distinctive detail. Appearance only, no backstory.
Use the ids {ids} in order of importance.

**JSON SCHEMA:**
```json
[
  {{"id": "char_1", "name": "Name", "description": "Visual description"}}
]
```""".strip()
