"""Canned activity suggestions used when the AI provider is unavailable.

Selection is by class level (Nursery, LKG, UKG) and activity type
(literacy, numeracy, general), each detected from the prompt text when not
given explicitly.
"""

from __future__ import annotations

_AGES = {"Nursery": 3, "LKG": 4, "UKG": 5}

_LITERACY_WORDS = ("literacy", "reading", "writing", "letter", "story")
_NUMERACY_WORDS = ("numeracy", "math", "number", "counting", "shape")

_ACTIVITIES: dict[tuple[str, str], list[str]] = {
    ("Nursery", "literacy"): [
        "Picture Book Talk: share a bright picture book and ask children to name the objects, colours and actions they see.",
        "Rhyme Circle: sing short action rhymes every morning, in English and Nepali, and let children fill in the last word.",
        "Sensory Letters: trace one letter of the week in sand, mould it in clay and hunt for objects that start with it.",
        "Puppet Stories: tell a simple story with hand puppets and invite children to repeat the characters' key phrases.",
        "Name Cards: give each child a card with their photo and name to find at arrival and tidy-up time.",
    ],
    ("Nursery", "numeracy"): [
        "Finger Counting Songs: sing counting songs that use fingers to show each number up to five.",
        "Sorting Trays: let children sort buttons, leaves or blocks by colour, size or shape.",
        "Number Hunt: hide cards numbered 1 to 5 around the room; children find them and call out the number.",
        "Counting Steps: count steps aloud on the way to the playground or the hand-washing line.",
        "Calendar Time: count the days on a class calendar and notice the repeating weekdays.",
    ],
    ("Nursery", "general"): [
        "Sensory Bins: fill bins with rice or water and offer scoops and cups for pouring practice.",
        "Nature Collage: collect leaves and petals on a short walk and glue them into a group collage.",
        "Movement Games: play Simon Says or Follow the Leader to build listening and gross motor skills.",
        "Colour of the Day: choose one colour each day and ask children to find things in that colour.",
        "Greeting Circle: start the day by greeting each friend by name and sharing one feeling.",
    ],
    ("LKG", "literacy"): [
        "I Spy Sounds: play I Spy using first sounds, for example something that starts with /b/.",
        "Story Sequencing: after a familiar story, arrange three picture cards for beginning, middle and end.",
        "Rhyme Match: pair picture cards that rhyme such as cat and hat or dog and log.",
        "Name Writing: practise writing names with chalk, crayons or clay letters.",
        "Word Family Houses: build -at and -an word houses and swap the first letter to make new words.",
    ],
    ("LKG", "numeracy"): [
        "Number Formation: form numbers 1 to 10 in sand, paint or with water on a slate.",
        "Count and Move: jump, clap or hop the number of times shown on a card.",
        "One More: add one more object to a small group and draw the new total.",
        "Shape Walk: look for circles, squares and triangles around the school and photograph them.",
        "Measure with Blocks: compare the lengths of classroom objects using cubes or paper clips.",
    ],
    ("LKG", "general"): [
        "Role Play Corner: set up a shop, home or clinic corner with simple props.",
        "Bead Patterns: copy and extend colour or shape patterns with beads and stamps.",
        "Kind Words Puppets: use puppets to act out sharing, waiting for a turn and saying sorry.",
        "Float or Sink: test classroom objects in a water tub and sort them by result.",
        "Festival Week: explore a Nepali festival through its songs, food and clothing.",
    ],
    ("UKG", "literacy"): [
        "Sound Blending: blend sounds into three-letter words such as c-a-t and s-u-n.",
        "Picture Prompt Stories: children tell a story from a picture while the teacher writes it down.",
        "Word Building: build simple regular words from letter cards.",
        "Draw and Tell: draw a favourite part of a story and try to write one sentence about it.",
        "Print Wall: make a wall of familiar signs and labels from the neighbourhood.",
    ],
    ("UKG", "numeracy"): [
        "Ways to Make Ten: split ten counters into two groups in as many ways as possible.",
        "Picture Graphs: graph favourite fruits or animals and talk about more, fewer and equal.",
        "Class Shop: price items from 1 to 10 rupees and pay with play money.",
        "Number Writing: practise writing 1 to 20 with correct start and finish points.",
        "Growing Patterns: build towers of 1, 2 and 3 blocks and predict the next step.",
    ],
    ("UKG", "general"): [
        "Community Helpers: learn about local helpers through visits, visitors and role play.",
        "Solve It Together: discuss a class problem, such as sharing one swing, and vote on a fair plan.",
        "Group Mural: plan and paint a mural where every child adds one part.",
        "Memory Trays: show objects on a tray, cover it and ask what went missing.",
        "Sentence Tracing: trace and copy short sentences about the day's story.",
    ],
}

_GENERAL: list[str] = [
    "Weather Chart: record the day's weather with simple symbols each morning.",
    "Show and Tell: invite each child to bring something from home and describe it.",
    "Music and Movement: dance to traditional Nepali songs to build rhythm and coordination.",
    "Act It Out: dramatise a familiar story or an everyday situation.",
    "Fine Motor Stations: thread beads, sort with tweezers, cut with safe scissors and trace lines.",
]

_LABELS = {
    "literacy": "pre-literacy activities",
    "numeracy": "pre-numeracy activities",
    "general": "activities",
}


def detect_class_level(prompt: str) -> str | None:
    text = prompt.lower()
    for level in ("Nursery", "LKG", "UKG"):
        if level.lower() in text:
            return level
    return None


def detect_activity_type(prompt: str) -> str:
    text = prompt.lower()
    if any(word in text for word in _LITERACY_WORDS):
        return "literacy"
    if any(word in text for word in _NUMERACY_WORDS):
        return "numeracy"
    return "general"


def fallback_suggestion(prompt: str, class_level: str | None = None) -> str:
    """Return a ready-made list of five activities matching the prompt."""
    level = class_level or detect_class_level(prompt)
    kind = detect_activity_type(prompt)

    if level not in _AGES:
        heading = "Here are some general teaching activities for pre-primary students:"
        items = _GENERAL
    else:
        heading = f"Here are some {_LABELS[kind]} for {level} students (age {_AGES[level]}):"
        items = _ACTIVITIES[(level, kind)]

    lines = [heading, ""]
    lines.extend(f"{i}. {item}" for i, item in enumerate(items, 1))
    return "\n".join(lines)
