"""Fabricated statements for lie rounds.

The round selector only depends on the LieGenerator protocol. The default
TemplateLieGenerator fills "{placeholder}" slots in first-person templates
with random picks from a replacement table, so lies read like the kind of
thing a player might have submitted as a truth.
"""

from __future__ import annotations

import random
import re
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from fibber.logic.player import Player

_PLACEHOLDER = re.compile(r"\{([a-z_0-9]+)\}")


class LieGenerator(Protocol):
    def generate_lie(self, player: Player) -> str: ...


DEFAULT_TEMPLATES: tuple[str, ...] = (
    # achievements
    "I once won a local competition for {skill}",
    "I hold the record for {achievement} in my hometown",
    "I received an award for {talent} when I was younger",
    # unusual experiences
    "I once got trapped in {location} for {duration}",
    "I accidentally {action} at {event}",
    "I once met {person} at {place}",
    "I survived {situation} {timeframe}",
    # hidden talents
    "I can {ability} while {activity}",
    "I taught myself to {ability} in just {span}",
    "I once performed {performance} in front of {audience}",
    # mishaps
    "I accidentally became {role} for {duration}",
    "I once confused {thing1} for {thing2} and {consequence}",
    "I got lost in {place} and ended up {outcome}",
    # jobs
    "I worked as a {job} for {duration}",
    "I was once hired to {task} for {client}",
    # food
    "I once cooked {dish} for {number} people",
    "I won a cooking contest with my {dish}",
    # travel
    "I got stranded in {location} and had to {solution}",
    "I discovered {discovery} while visiting {place}",
    # animals
    "I once rescued a {animal} from {situation}",
    "I taught my pet {animal} to {trick}",
    # gadgets
    "I built a {gadget} that can {function}",
    "I once fixed my {device} using only {materials}",
    # school
    "I once gave a presentation about {topic} to {audience}",
    "I accidentally {action} during {school_event}",
)

DEFAULT_REPLACEMENTS: dict[str, tuple[str, ...]] = {
    "skill": ("solving Rubik's cubes blindfolded", "speed reading", "juggling", "whistling loudly", "beatboxing"),
    "achievement": ("most pizza slices eaten in one sitting", "longest continuous yodel", "fastest shoe tying"),
    "talent": ("creative writing", "photography", "singing", "storytelling", "public speaking"),
    "location": ("an elevator", "a library after hours", "a parking garage", "a museum", "an airport"),
    "duration": ("3 hours", "an entire afternoon", "overnight", "half a day", "six hours straight"),
    "action": ("started a flash mob", "joined the wrong tour group", "sat in the wrong meeting", "got on the wrong bus"),
    "event": ("a wedding", "a business conference", "a graduation ceremony", "a job interview", "a family reunion"),
    "person": ("a minor celebrity", "a local news anchor", "a professional athlete", "a famous chef"),
    "place": ("a coffee shop", "a bookstore", "a grocery store", "a train station", "a hotel"),
    "situation": ("a sudden thunderstorm", "a power outage", "a cancelled flight", "a broken elevator"),
    "timeframe": ("last summer", "during college", "as a teenager", "a few years ago"),
    "span": ("two weeks", "a single weekend", "one month", "three days"),
    "ability": ("play the ukulele", "speak basic sign language", "make balloon animals", "identify constellations"),
    "activity": ("hiking", "jogging", "riding my bike", "reading in the park"),
    "performance": ("karaoke", "stand-up comedy", "a magic show", "a dance routine"),
    "audience": ("100+ people", "my entire school", "a packed auditorium", "a room full of strangers"),
    "role": ("the mascot", "a tour guide", "a translator", "a judge"),
    "thing1": ("salt", "my keys", "the remote", "my glasses"),
    "thing2": ("sugar", "someone else's keys", "a calculator", "a magnifying glass"),
    "consequence": ("hilarity ensued", "caused a minor disaster", "made everyone laugh"),
    "outcome": ("finding the best restaurant in town", "meeting my future best friend", "discovering a hidden talent"),
    "job": ("professional food taster", "mystery shopper", "costume character", "pet sitter"),
    "task": ("organize their closet", "teach their dog tricks", "plan their wedding"),
    "client": ("a busy executive", "a celebrity", "a local business", "my neighbor"),
    "dish": ("lasagna", "birthday cake", "thanksgiving dinner", "barbecue"),
    "number": ("50", "100", "nearly 200", "about 150"),
    "solution": ("hitchhike", "walk for miles", "sleep in the airport", "find a local who helped me"),
    "discovery": ("a hidden cafe", "a beautiful viewpoint", "a secret garden", "a historic landmark"),
    "animal": ("cat", "dog", "squirrel", "rabbit", "turtle"),
    "trick": ("shake hands", "play dead", "fetch specific items", "respond to hand signals"),
    "gadget": ("phone holder", "plant watering system", "book stand", "kitchen timer"),
    "function": ("remind me of appointments", "track my habits", "save me time"),
    "device": ("computer", "phone", "camera", "microwave"),
    "materials": ("paperclips and rubber bands", "duct tape", "things I found in my junk drawer"),
    "topic": ("the history of pizza", "why cats purr", "the psychology of color"),
    "school_event": ("the school play", "a science fair", "a talent show", "a school assembly"),
}


class TemplateLieGenerator:
    """Build lies by filling random templates with random replacements."""

    def __init__(
        self,
        rng: random.Random | None = None,
        templates: Sequence[str] = DEFAULT_TEMPLATES,
        replacements: Mapping[str, Sequence[str]] | None = None,
    ) -> None:
        if not templates:
            raise ValueError("at least one template is required")
        self._rng = rng or random.Random()  # noqa: S311
        self._templates = list(templates)
        self._replacements = {k: list(v) for k, v in (replacements or DEFAULT_REPLACEMENTS).items()}

    def generate_lie(self, player: Player) -> str:  # noqa: ARG002
        return self.fill_template(self._rng.choice(self._templates))

    def fill_template(self, template: str) -> str:
        """Replace every known placeholder; unknown ones become "[key]"."""
        return _PLACEHOLDER.sub(self._replacement_for, template)

    def _replacement_for(self, match: re.Match[str]) -> str:
        options = self._replacements.get(match.group(1))
        if not options:
            return f"[{match.group(1)}]"
        return self._rng.choice(options)
