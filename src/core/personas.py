from dataclasses import dataclass, field
from typing import Dict, List


@dataclass(frozen=True)
class Persona:
    """
    Declarative voice definition.
    """
    name: str
    description: str
    openers: List[str]
    closers: List[str]
    connectors: List[str] = field(default_factory=list)


CASUAL = Persona(
    name="casual",
    description="Short, informal takes",
    openers=[
        "Quick take:", "Notable:", "TL;DR:", "Heads-up:", "Here's the gist:",
        "My read:", "Key point:", "Bottom line:", "The deal:", "What's up:",
    ],
    closers=[
        "Thoughts?", "Worth watching.", "Big if true.", "Curious to see adoption.",
        "What do you think?", "Keep an eye on this.", "Interesting times ahead.",
        "This could be big.",
    ],
)

PROFESSIONAL = Persona(
    name="professional",
    description="Analyst register",
    openers=[
        "Analysis:", "Insight:", "Observation:", "Assessment:", "Key finding:",
        "Notable development:", "Important update:", "Significant news:",
        "Industry update:", "Market insight:",
    ],
    closers=[
        "Worth monitoring.", "Significant development.", "Industry implications to watch.",
        "Key trend to follow.", "Important to track.", "Notable advancement.",
        "Worth following closely.", "Significant potential.",
    ],
)

CONVERSATIONAL = Persona(
    name="conversational",
    description="Talking to followers directly",
    openers=[
        "If you follow AI:", "If you follow tech:", "If you follow startups:",
        "So here's what's happening:", "This caught my attention:", "Worth noting:",
        "Interesting development:", "Here's what matters:", "The big picture:",
        "What's interesting:", "This is notable:", "Quick heads-up:",
    ],
    closers=[
        "Thoughts?", "Worth watching.", "Big if true.", "Curious to see adoption.",
        "What do you think?", "Keep an eye on this.", "Interesting times ahead.",
        "This could be big.", "What's your take?", "One to watch.",
    ],
)

ALL_PERSONAS: Dict[str, Persona] = {
    CASUAL.name: CASUAL,
    PROFESSIONAL.name: PROFESSIONAL,
    CONVERSATIONAL.name: CONVERSATIONAL,
}

# Tones used by the thread composer
PRECISE_TONE = Persona(
    name="precise",
    description="Release-notes register for threads",
    openers=[
        "Update:", "Release:", "Announcement:", "Development:", "New feature:",
        "Enhancement:", "Improvement:", "Latest:",
    ],
    closers=[
        "Details below.", "Full release notes available.", "Documentation updated.",
        "API changes noted.", "Compatibility confirmed.", "Testing recommended.",
    ],
    connectors=["Furthermore", "Additionally", "Moreover", "In addition", "Also"],
)

CASUAL_TONE = Persona(
    name="casual",
    description="Informal register for threads",
    openers=[
        "Quick take:", "Heads up:", "FYI:", "Just spotted:", "Interesting:",
        "Notable:", "TL;DR:",
    ],
    closers=[
        "Thoughts?", "Worth watching.", "Big if true.", "Curious to see adoption.",
        "Keep an eye on this.", "This could be big.",
    ],
    connectors=["Also", "Plus", "Meanwhile", "Additionally", "On top of that"],
)

THREAD_TONES: Dict[str, Persona] = {
    PRECISE_TONE.name: PRECISE_TONE,
    CASUAL_TONE.name: CASUAL_TONE,
}

# Sources with a fixed voice; everything else uses the default
SOURCE_VOICES: Dict[str, str] = {
    "TechCrunch AI": "professional",
    "VentureBeat AI": "professional",
    "Hacker News AI": "conversational",
    "Google AI Blog": "professional",
}
DEFAULT_VOICE = "casual"

RHETORICAL_DEVICES: Dict[str, List[str]] = {
    "opinion": [
        "This looks promising.", "Worth keeping an eye on.", "This could be significant.",
        "Interesting approach here.",
    ],
    "question": [
        "How will this impact users?", "What does this mean for the industry?",
        "What's the real impact here?", "What's the bigger picture?",
    ],
    "contrast": [
        "This stands out from the usual noise.", "This isn't your typical announcement.",
        "What makes this different is the approach.",
    ],
    "so_what": [
        "The real value: this solves actual problems.",
        "Here's why you should care: it's practical.",
        "The bottom line: this delivers real value.",
    ],
}
