"""Game constants used by the work estimators, staff planner and game clock."""

from winery.models.work import WorkCategory

# Work units produced by one standard staff member in one week
BASE_WORK_UNITS = 50

DEFAULT_VINE_DENSITY = 5000

# Processing rates (amount per standard week) per category
TASK_RATES: dict[WorkCategory, float] = {
    WorkCategory.PLANTING: 0.28,        # hectares/week
    WorkCategory.HARVESTING: 1.78,      # hectares/week
    WorkCategory.CLEARING: 0.4,         # hectares/week
    WorkCategory.UPROOTING: 0.23,       # hectares/week
    WorkCategory.CRUSHING: 2.5,         # tons/week
    WorkCategory.FERMENTATION: 5.0,     # kL/week
    WorkCategory.STAFF_SEARCH: 5.0,     # candidates/week
    WorkCategory.ADMINISTRATION: 500,   # tasks/week
    WorkCategory.LENDER_SEARCH: 2.0,    # searches/week
    WorkCategory.BOOKKEEPING: 500,      # transactions/week
}

INITIAL_WORK: dict[WorkCategory, float] = {
    WorkCategory.PLANTING: 10,
    WorkCategory.HARVESTING: 5,
    WorkCategory.CLEARING: 5,
    WorkCategory.UPROOTING: 10,
    WorkCategory.CRUSHING: 10,
    WorkCategory.FERMENTATION: 100,
    WorkCategory.STAFF_SEARCH: 25,
    WorkCategory.ADMINISTRATION: 25,
    WorkCategory.LENDER_SEARCH: 20,
    WorkCategory.BOOKKEEPING: 25,
}

DENSITY_BASED_CATEGORIES = frozenset({
    WorkCategory.PLANTING,
    WorkCategory.HARVESTING,
    WorkCategory.UPROOTING,
})

# kg of grapes harvested per standard week
HARVEST_YIELD_RATE = 500

# Staff skill used for each category
CATEGORY_SKILLS: dict[WorkCategory, str] = {
    WorkCategory.PLANTING: "field",
    WorkCategory.HARVESTING: "field",
    WorkCategory.CLEARING: "field",
    WorkCategory.UPROOTING: "field",
    WorkCategory.CRUSHING: "winery",
    WorkCategory.FERMENTATION: "winery",
    WorkCategory.STAFF_SEARCH: "administration",
    WorkCategory.ADMINISTRATION: "administration",
    WorkCategory.LENDER_SEARCH: "administration",
    WorkCategory.BOOKKEEPING: "administration",
}

SPECIALIZATION_BONUS = 1.2
TEAM_SIZE_EXPONENT = 0.92

GRAPE_FRAGILITY: dict[str, float] = {
    "Barbera": 0.4,
    "Chardonnay": 0.6,
    "Pinot Noir": 0.7,
    "Primitivo": 0.3,
    "Sauvignon Blanc": 0.5,
    "Tempranillo": 0.45,
}

SOIL_DIFFICULTY_MODIFIERS: dict[str, float] = {
    "Sand": -0.10,
    "Loam": -0.05,
    "Loess": -0.03,
    "Alluvial": 0.00,
    "Clay": 0.00,
    "Limestone": 0.00,
    "Clay-Limestone": 0.05,
    "Gravel": 0.08,
    "Marl": 0.10,
    "Shale": 0.12,
    "Heavy Clay": 0.15,
    "Rocky": 0.20,
    "Granite": 0.18,
    "Basalt": 0.20,
    "Sandstone": 0.15,
    "Slate": 0.22,
    "Schist": 0.25,
    "Chalk": 0.15,
    "Volcanic": 0.18,
    "Galestro": 0.20,
}

# id -> (name, rate in ha/week, initial work)
CLEARING_TASKS: dict[str, tuple[str, float, float]] = {
    "clear-vegetation": ("Clear Vegetation", 0.5, 5),
    "remove-debris": ("Remove Debris", 0.6, 5),
    "uproot-vines": ("Uproot Vines", 0.23, 10),
    "replant-vines": ("Replant Vines", 0.28, 10),
}

PLANTING_SEASON_MODIFIERS = {"Spring": 0.0, "Summer": 0.25, "Fall": 0.35, "Winter": 0.0}
CLEARING_SEASON_MODIFIERS = {"Spring": 0.1, "Summer": 0.25, "Fall": 0.2, "Winter": 0.0}

# Fermentation method -> (work multiplier, equipment cost)
FERMENTATION_METHODS: dict[str, tuple[float, float]] = {
    "Basic": (1.0, 0),
    "Temperature Controlled": (1.1, 500),
    "Extended Maceration": (1.3, 800),
}

FERMENTATION_TEMPERATURES: dict[str, float] = {
    "Ambient": 0,
    "Cool": 200,
    "Warm": 100,
}

LENDER_TYPES = ("Bank", "Investment Fund", "Private Lender")

# Harvest side effects below these amounts are deferred to a later tick
MIN_PARTIAL_HARVEST_KG = 5
MIN_FINAL_HARVEST_KG = 1

SEASONS = ("Spring", "Summer", "Fall", "Winter")
WEEKS_PER_SEASON = 12
GROWING_SEASONS = frozenset({"Spring", "Summer", "Fall"})

BASE_WEEKLY_WAGE = 500
SKILL_WAGE_MULTIPLIER = 1000

# Lender type -> (interest range, principal range, duration range in seasons)
LENDER_PARAMS: dict[str, tuple[tuple[float, float], tuple[float, float], tuple[int, int]]] = {
    "Bank": ((0.04, 0.08), (50000, 500000), (4, 120)),
    "Investment Fund": ((0.05, 0.10), (50000, 1000000), (4, 240)),
    "Private Lender": ((0.08, 0.15), (5000, 50000), (4, 60)),
}

STAFF_FIRST_NAMES = (
    "Alessandro", "Beatriz", "Camille", "Dieter", "Elena", "Francesco", "Giulia", "Hugo",
    "Ines", "Jakob", "Lucia", "Mateo", "Nadia", "Olivier", "Paula", "Sofia",
)
STAFF_LAST_NAMES = (
    "Bianchi", "Dubois", "Fernandez", "Garcia", "Keller", "Laurent", "Moreau", "Rossi",
    "Schmidt", "Silva", "Weber", "Conti",
)
STAFF_NATIONALITIES = ("Italy", "France", "Spain", "Germany", "United States")
STAFF_SKILL_NAMES = ("field", "winery", "administration", "sales", "maintenance")
