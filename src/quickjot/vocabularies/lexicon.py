"""Word lists for segmentation, classification and extraction.

All lists are lowercase. Multi-word entries are matched as phrases.
"""

# Verbs that make a two-word fragment ("call mom", "buy milk") a real item
ACTION_VERBS = frozenset([
    "buy", "call", "email", "message", "text", "send", "follow", "pay", "book",
    "schedule", "renew", "fix", "update", "clean", "plan", "review", "complete",
    "finish", "pick", "get", "go", "visit", "write", "draft", "upload", "submit",
    "meet", "check", "verify", "order", "return", "grab", "cancel", "file",
    "prepare", "print", "wash", "water", "feed", "walk", "cook", "ask", "sign",
    "take", "bring", "drop", "read", "research", "contact", "reply", "remind",
])

# =============================================================================
# Classifier taxonomies (evaluated Event -> To-do -> Task -> Journal -> Note)
# =============================================================================

EVENT_KEYWORDS = (
    "appointment", "meeting", "meet", "conference", "interview", "standup",
    "stand-up", "webinar", "seminar", "workshop", "ceremony", "wedding",
    "party", "reservation", "event", "flight", "train to", "trip", "travel",
    "dinner with", "lunch with", "coffee with",
)

TODO_KEYWORDS = (
    "todo", "to-do", "call", "text", "message", "email", "buy", "send", "pay",
    "book", "renew", "follow up", "contact", "order", "pick up", "drop off",
    "submit", "apply", "return", "cancel",
)

TASK_KEYWORDS = (
    "task", "deliverable", "complete", "finish", "implement", "develop",
    "create", "build", "design", "review", "test", "deploy", "refactor",
    "draft", "prepare", "write",
)

# First-person affect verbs that mark reflective writing
REFLECTIVE_KEYWORDS = (
    "feel", "felt", "feeling", "think", "thought", "today", "yesterday",
    "remember", "realize", "realized", "grateful", "wish", "hope", "learned",
)

# =============================================================================
# Normalizer
# =============================================================================

# Pure disfluencies, always removed
FILLER_WORDS = ("um", "umm", "uh", "uhh", "uhm", "er", "erm", "ah", "hmm")

# Removed only at the start of a sentence ("so, call mom")
DISCOURSE_MARKERS = ("well", "so", "okay", "ok", "alright", "anyway")

# =============================================================================
# Title extraction
# =============================================================================

TITLE_LABELS = ("task", "todo", "to-do", "note", "deliverable", "reminder", "event", "journal")

REQUEST_PREFIXES = (
    "remind me to", "please remember to", "please", "i need to", "i have to",
    "i want to", "i would like to", "i'd like to", "i should", "i must",
    "can you", "could you", "don't forget to", "remember to", "also",
)

# =============================================================================
# Extraction
# =============================================================================

LOCATION_STOPWORDS = frozenset([
    "the", "and", "or", "but", "for", "with", "about", "when", "where", "what", "how",
])

MONTHS = {
    "january": 1, "jan": 1, "february": 2, "feb": 2, "march": 3, "mar": 3,
    "april": 4, "apr": 4, "may": 5, "june": 6, "jun": 6, "july": 7, "jul": 7,
    "august": 8, "aug": 8, "september": 9, "sep": 9, "sept": 9,
    "october": 10, "oct": 10, "november": 11, "nov": 11, "december": 12, "dec": 12,
}

WEEKDAYS = {
    "monday": 0, "mon": 0, "tuesday": 1, "tue": 1, "tues": 1,
    "wednesday": 2, "wed": 2, "thursday": 3, "thu": 3, "thur": 3, "thurs": 3,
    "friday": 4, "fri": 4, "saturday": 5, "sat": 5, "sunday": 6, "sun": 6,
}

# Words that look like a place after "at"/"in" but are times
TIME_WORDS = frozenset([
    "today", "tomorrow", "tonight", "noon", "midnight", "night", "morning",
    "afternoon", "evening", "once", "least", "most", "first", "last", "time",
    "week", "weeks", "month", "months", "year", "minute", "minutes", "hour", "hours",
])

NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12,
    "fifteen": 15, "twenty": 20, "thirty": 30, "forty": 40, "forty-five": 45,
    "fifty": 50, "sixty": 60, "ninety": 90,
}

# Follow "in"/"at" without naming a place ("in progress", "at least")
NON_PLACE_WORDS = frozenset([
    "person", "progress", "order", "case", "general", "total", "advance",
    "touch", "mind", "time", "charge", "addition", "fact", "particular",
])
