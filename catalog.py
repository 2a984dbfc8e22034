"""Grocery vocabulary used to validate, name and categorize spoken items."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional

from models import CatalogEntry

OTHER_CATEGORY = "other"

GROCERY_ITEMS: dict[str, tuple[str, ...]] = {
    "fruits": (
        "apple", "apples", "banana", "bananas", "orange", "oranges", "grape", "grapes",
        "strawberry", "strawberries", "blueberry", "blueberries", "raspberry", "raspberries",
        "blackberry", "blackberries", "lemon", "lemons", "lime", "limes", "grapefruit",
        "avocado", "avocados", "pear", "pears", "peach", "peaches", "plum", "plums",
        "cherry", "cherries", "pineapple", "mango", "mangos", "kiwi", "kiwis",
        "watermelon", "cantaloupe", "honeydew", "papaya", "coconut", "coconuts",
        "cranberry", "cranberries", "pomegranate", "dates", "figs", "raisins",
    ),
    "vegetables": (
        "carrot", "carrots", "celery", "onion", "onions", "potato", "potatoes",
        "sweet potato", "sweet potatoes", "tomato", "tomatoes", "lettuce", "spinach",
        "broccoli", "cauliflower", "cucumber", "cucumbers", "pepper", "peppers",
        "bell pepper", "bell peppers", "jalapeno", "jalapenos", "garlic", "ginger",
        "mushroom", "mushrooms", "zucchini", "squash", "eggplant", "corn",
        "green beans", "asparagus", "cabbage", "kale", "arugula", "radish", "radishes",
        "beets", "turnip", "parsnip", "leek", "leeks", "scallions", "green onions",
        "brussels sprouts", "artichoke", "okra", "snow peas", "snap peas",
    ),
    "proteins": (
        "chicken", "chicken breast", "chicken thigh", "chicken wings", "whole chicken",
        "beef", "ground beef", "steak", "ribeye", "sirloin", "tenderloin", "brisket",
        "pork", "pork chops", "pork shoulder", "ham", "bacon", "sausage", "bratwurst",
        "turkey", "ground turkey", "turkey breast", "deli turkey", "pepperoni", "salami",
        "salmon", "tuna", "cod", "tilapia", "shrimp", "crab", "lobster", "scallops",
        "mussels", "clams", "sardines", "anchovies", "halibut", "mahi mahi",
        "eggs", "egg whites", "tofu", "tempeh", "seitan", "hot dogs",
    ),
    "dairy": (
        "milk", "whole milk", "skim milk", "2% milk", "almond milk", "oat milk",
        "soy milk", "coconut milk", "rice milk", "lactose free milk",
        "cheese", "cheddar", "mozzarella", "parmesan", "swiss", "gouda", "brie",
        "feta", "goat cheese", "cream cheese", "cottage cheese", "ricotta",
        "provolone", "monterey jack", "blue cheese", "camembert", "manchego",
        "butter", "margarine", "ghee", "yogurt", "greek yogurt", "plain yogurt",
        "vanilla yogurt", "strawberry yogurt", "heavy cream", "half and half",
        "sour cream", "whipped cream", "ice cream", "frozen yogurt",
    ),
    "grains": (
        "bread", "white bread", "wheat bread", "whole grain bread", "sourdough",
        "rye bread", "pumpernickel", "bagels", "english muffins", "croissants",
        "tortillas", "pita bread", "naan", "rolls", "buns", "hamburger buns",
        "rice", "white rice", "brown rice", "jasmine rice", "basmati rice", "wild rice",
        "pasta", "spaghetti", "penne", "fettuccine", "linguine", "rigatoni", "macaroni",
        "lasagna noodles", "angel hair", "ravioli", "gnocchi",
        "cereal", "oatmeal", "granola", "corn flakes", "cheerios", "rice krispies",
        "flour", "all purpose flour", "wheat flour", "almond flour", "coconut flour",
        "quinoa", "barley", "oats", "steel cut oats", "couscous", "bulgur",
    ),
    "pantry": (
        "salt", "black pepper", "white pepper", "sugar", "brown sugar", "honey",
        "maple syrup", "agave", "vanilla extract", "almond extract",
        "olive oil", "vegetable oil", "coconut oil", "canola oil", "sesame oil",
        "vinegar", "balsamic vinegar", "apple cider vinegar", "white vinegar",
        "ketchup", "mustard", "dijon mustard", "mayonnaise", "ranch", "bbq sauce",
        "soy sauce", "worcestershire sauce", "hot sauce", "sriracha", "tabasco",
        "peanut butter", "almond butter", "nutella", "jam", "jelly", "preserves",
        "baking powder", "baking soda", "yeast", "cornstarch", "cocoa powder",
        "spices", "garlic powder", "onion powder", "paprika", "cumin", "oregano",
        "basil", "thyme", "rosemary", "sage", "cinnamon", "nutmeg", "ginger powder",
    ),
    "canned": (
        "canned tomatoes", "tomato sauce", "tomato paste", "marinara sauce",
        "canned beans", "black beans", "kidney beans", "pinto beans", "chickpeas",
        "canned corn", "canned peas", "canned carrots", "canned green beans",
        "chicken broth", "beef broth", "vegetable broth", "stock",
        "canned tuna", "canned salmon", "canned sardines",
        "soup", "chicken soup", "tomato soup", "vegetable soup", "minestrone",
        "pasta sauce", "alfredo sauce", "pesto sauce", "salsa", "pickles",
        "olives", "capers", "coconut milk", "evaporated milk", "condensed milk",
    ),
    "beverages": (
        "water", "sparkling water", "soda", "cola", "sprite", "orange soda",
        "juice", "orange juice", "apple juice", "grape juice", "cranberry juice",
        "coffee", "instant coffee", "coffee beans", "ground coffee", "espresso",
        "tea", "green tea", "black tea", "herbal tea", "chamomile tea", "earl grey",
        "beer", "wine", "red wine", "white wine", "champagne", "vodka", "whiskey",
        "energy drink", "sports drink", "coconut water", "kombucha",
    ),
    "frozen": (
        "frozen vegetables", "frozen broccoli", "frozen peas", "frozen corn",
        "frozen fruit", "frozen berries", "frozen mango", "frozen strawberries",
        "frozen pizza", "frozen dinners", "frozen fish", "frozen chicken",
        "ice cream", "frozen yogurt", "popsicles", "frozen waffles", "frozen fries",
        "frozen burgers", "frozen shrimp", "frozen dumplings",
    ),
    "snacks": (
        "chips", "potato chips", "tortilla chips", "pretzels", "popcorn", "crackers",
        "nuts", "peanuts", "almonds", "walnuts", "cashews", "pistachios",
        "cookies", "chocolate chip cookies", "oreos", "graham crackers",
        "candy", "chocolate", "dark chocolate", "milk chocolate", "gummy bears",
        "trail mix", "granola bars", "protein bars", "rice cakes", "beef jerky",
    ),
    "household": (
        "toilet paper", "paper towels", "tissues", "napkins", "aluminum foil",
        "plastic wrap", "trash bags", "ziplock bags", "parchment paper",
        "dish soap", "hand soap", "laundry detergent", "fabric softener",
        "bleach", "all purpose cleaner", "glass cleaner", "disinfectant",
        "sponges", "paper plates", "plastic cups", "disposable utensils",
    ),
    "personal": (
        "shampoo", "conditioner", "body wash", "soap bar", "lotion", "deodorant",
        "toothpaste", "toothbrush", "mouthwash", "floss", "razors", "shaving cream",
        "sunscreen", "lip balm", "band aids", "vitamins", "aspirin", "ibuprofen",
    ),
    "baby_pet": (
        "diapers", "baby food", "baby formula", "baby wipes", "baby shampoo",
        "dog food", "cat food", "pet treats", "cat litter", "dog treats",
    ),
}

CATEGORY_NAMES = {
    "fruits": "Fruits",
    "vegetables": "Vegetables",
    "proteins": "Proteins",
    "dairy": "Dairy & Alternatives",
    "grains": "Grains & Bread",
    "pantry": "Pantry & Condiments",
    "canned": "Canned & Jarred Goods",
    "beverages": "Beverages",
    "frozen": "Frozen Foods",
    "snacks": "Snacks & Sweets",
    "household": "Household Items",
    "personal": "Personal Care",
    "baby_pet": "Baby & Pet",
    OTHER_CATEGORY: "Other",
}


def _normalize(name: str) -> str:
    return " ".join(name.lower().split())


def _plural_match(candidate: str, entry: str) -> bool:
    if candidate.endswith("s") and entry == candidate[:-1]:
        return True
    return entry.endswith("s") and candidate == entry[:-1]


def _compound_match(candidate: str, entry: str, either_direction: bool) -> bool:
    if " " not in candidate and " " not in entry:
        return False
    candidate_words = set(candidate.split(" "))
    entry_words = entry.split(" ")
    if all(word in candidate_words for word in entry_words):
        return True
    if either_direction:
        entry_set = set(entry_words)
        return all(word in entry_set for word in candidate.split(" "))
    return False


class ItemCatalog:
    """Immutable grocery dictionary partitioned into categories.

    Matching rules, in order of strength:

    * exact membership of the lowercased, whitespace-collapsed name;
    * plural/singular equivalence (a trailing ``s`` added or removed);
    * compound subset: for multi-word names, every word of the catalog entry
      appears in the candidate.  Validation additionally accepts the reverse
      direction (every candidate word appears in the entry).

    ``best_match`` resolves ties by preferring the longest entry, so
    ``"greek yogurt"`` wins over ``"yogurt"``.
    """

    def __init__(self, items: Optional[Mapping[str, Iterable[str]]] = None) -> None:
        source = GROCERY_ITEMS if items is None else items
        entries: list[CatalogEntry] = []
        by_category: dict[str, tuple[str, ...]] = {}
        for category, names in source.items():
            normalized = tuple(_normalize(name) for name in names)
            by_category[category] = normalized
            entries.extend(CatalogEntry(name=name, category=category) for name in normalized)
        self._entries = tuple(entries)
        self._by_category = by_category
        self._names = tuple(dict.fromkeys(entry.name for entry in entries))
        self._name_set = frozenset(self._names)
        self._owner: dict[str, str] = {}
        for entry in entries:
            self._owner.setdefault(entry.name, entry.category)

    @property
    def entries(self) -> tuple[CatalogEntry, ...]:
        return self._entries

    @property
    def categories(self) -> tuple[str, ...]:
        return tuple(self._by_category)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and _normalize(name) in self._name_set

    def __len__(self) -> int:
        return len(self._names)

    def is_valid(self, name: str) -> bool:
        candidate = _normalize(name)
        if not candidate:
            return False
        if candidate in self._name_set:
            return True
        return any(
            _plural_match(candidate, entry) or _compound_match(candidate, entry, either_direction=True)
            for entry in self._names
        )

    def best_match(self, name: str) -> Optional[str]:
        candidate = _normalize(name)
        if not candidate:
            return None
        if candidate in self._name_set:
            return candidate
        matches = [
            entry
            for entry in self._names
            if _plural_match(candidate, entry) or _compound_match(candidate, entry, either_direction=False)
        ]
        if not matches:
            return None
        # max() keeps the first of equally long entries, i.e. catalog order.
        return max(matches, key=len)

    def category_of(self, name: str) -> str:
        candidate = _normalize(name)
        if not candidate:
            return OTHER_CATEGORY
        if candidate in self._owner:
            return self._owner[candidate]
        for category, names in self._by_category.items():
            if any(
                _plural_match(candidate, entry) or _compound_match(candidate, entry, either_direction=False)
                for entry in names
            ):
                return category
        return OTHER_CATEGORY


_default_catalog: Optional[ItemCatalog] = None


def default_catalog() -> ItemCatalog:
    """Shared catalog built from ``GROCERY_ITEMS`` on first use."""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = ItemCatalog()
    return _default_catalog
