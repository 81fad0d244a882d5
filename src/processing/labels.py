"""Label vocabulary plus the fixed class tables used by decode and post-processing.

All lookup tables are keyed by lower-cased class name so that label files
with different capitalisation still match.
"""

from __future__ import annotations

import ast
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def load_labels(path: str | Path | None, num_classes: int = 601) -> list[str]:
    """Read one label per line, falling back to ``Class_<n>`` placeholders."""
    if path is not None:
        label_path = Path(path)
        if label_path.exists():
            names = [
                line.strip() for line in label_path.read_text(encoding="utf-8").splitlines()
                if line.strip()
            ]
            if names:
                if len(names) != num_classes:
                    logger.warning("Label file %s has %d entries, expected %d",
                                   label_path, len(names), num_classes)
                return names
        logger.warning("Label file %s not found or empty", label_path)
    return placeholder_labels(num_classes)


def placeholder_labels(num_classes: int) -> list[str]:
    return [f"Class_{i}" for i in range(num_classes)]


def labels_from_metadata(names: str | None) -> list[str] | None:
    """Parse the ``names`` entry exported into ONNX model metadata.

    The value is the repr of a ``{index: name}`` dict.
    """
    if not names:
        return None
    try:
        parsed = ast.literal_eval(names)
    except (ValueError, SyntaxError):
        logger.warning("Unparseable label metadata in model")
        return None
    if isinstance(parsed, dict):
        return [str(parsed[k]) for k in sorted(parsed)]
    if isinstance(parsed, (list, tuple)):
        return [str(v) for v in parsed]
    return None


def _lower(names) -> frozenset[str]:
    return frozenset(n.lower() for n in names)


# Per-class base threshold groups
ULTRA_SMALL_OBJECTS = frozenset({
    "pen", "pencil", "pencils", "marker", "stick", "twig", "bug", "ant",
    "spider", "mosquito", "fly", "bee", "beetle",
})

SMALL_OBJECTS = frozenset({
    "pen", "pencil", "eraser", "marker", "key", "keys", "coin", "button",
    "needle", "pin", "clip", "paperclip", "stapler", "staple", "tape",
    "scissors", "nail", "screw", "bolt", "nut", "washer", "ring", "earring",
    "necklace", "bracelet", "watch", "glasses", "sunglasses", "toothbrush",
    "razor", "comb", "brush", "hairbrush", "nail clipper", "tweezers",
    "spoon", "fork", "knife",
})

# Commonly small or occluded classes that get a lenient threshold.
PRIORITY_CLASSES = frozenset({
    "fork", "knife", "spoon", "cup", "coffee cup", "mug", "wine glass",
    "bottle", "mobile phone", "remote control", "computer mouse", "pen",
    "glasses", "sunglasses", "watch", "book", "key", "toothbrush",
    "scissors", "coin", "light switch", "door handle",
})

# Context class -> classes it spatially co-occurs with.
CO_OCCURRENCE: dict[str, frozenset[str]] = {
    "plate": frozenset({"fork", "knife", "spoon", "cup", "coffee cup", "mug",
                        "wine glass", "bowl", "saucer", "bread", "chopsticks"}),
    "kitchen & dining room table": frozenset({"plate", "cup", "coffee cup",
                                              "mug", "bowl", "bottle", "chair",
                                              "fork", "knife", "spoon"}),
    "table": frozenset({"plate", "cup", "coffee cup", "mug", "bowl", "bottle",
                        "chair", "book", "laptop"}),
    "desk": frozenset({"laptop", "computer mouse", "computer keyboard",
                       "computer monitor", "pen", "book", "mobile phone",
                       "lamp", "coffee cup", "mug"}),
    "laptop": frozenset({"computer mouse", "mobile phone", "headphones",
                         "computer keyboard", "coffee cup", "mug"}),
    "sink": frozenset({"tap", "soap dispenser", "towel", "toothbrush",
                       "mirror", "bathroom cabinet"}),
    "toilet": frozenset({"toilet paper", "sink", "towel", "bathtub"}),
    "bed": frozenset({"pillow", "nightstand", "lamp", "alarm clock"}),
    "couch": frozenset({"pillow", "remote control", "coffee table",
                        "television", "lamp"}),
    "television": frozenset({"remote control", "couch", "coffee table"}),
    "refrigerator": frozenset({"bottle", "milk", "juice", "oven",
                               "microwave oven"}),
    "person": frozenset({"mobile phone", "glasses", "sunglasses", "hat",
                         "handbag", "backpack", "watch", "umbrella"}),
}

# Umbrella categories that fire on whole scenes rather than objects.
GENERIC_CLASSES = _lower([
    "Building", "House", "Office building", "Skyscraper", "Tower", "Room",
    "Wall", "Ceiling", "Floor", "Indoor", "Outdoor", "Furniture", "Food",
    "Animal", "Vehicle", "Clothing", "Container", "Tool", "Plant",
    "Invertebrate", "Mammal", "Insect", "Seafood", "Sports equipment",
    "Musical instrument", "Kitchen appliance", "Home appliance",
    "Office supplies", "Personal care", "Fashion accessory", "Tableware",
    "Kitchenware", "Medical equipment", "Land vehicle", "Watercraft",
    "Weapon", "Toy", "Reptile",
])

# Catch-all body class, capped at a smaller area than other classes.
BODY_CLASSES = frozenset({"human body"})

# Classes that cannot both describe the same region.
CONFLICT_PAIRS: tuple[frozenset[str], ...] = (
    frozenset({"toilet", "waste container"}),
    frozenset({"cup", "mug"}),
    frozenset({"coffee cup", "mug"}),
    frozenset({"cup", "coffee cup"}),
    frozenset({"bowl", "mixing bowl"}),
    frozenset({"mobile phone", "telephone"}),
    frozenset({"mobile phone", "remote control"}),
    frozenset({"couch", "sofa bed"}),
    frozenset({"couch", "studio couch"}),
    frozenset({"table", "desk"}),
    frozenset({"laptop", "computer monitor"}),
    frozenset({"television", "computer monitor"}),
    frozenset({"car", "taxi"}),
    frozenset({"oven", "microwave oven"}),
)

# Classes allowed more than the default number of instances per frame.
MULTI_INSTANCE_CLASSES = frozenset({
    "person", "chair", "book", "cup", "phone", "mobile phone", "plate",
    "fork", "knife", "spoon",
})


def is_conflicting(a: str, b: str) -> bool:
    return frozenset({a.lower(), b.lower()}) in CONFLICT_PAIRS


INDOOR_CLASSES = _lower([
    "Accordion", "Adhesive tape", "Alarm clock", "Apple", "Armadillo",
    "Artichoke", "Backpack", "Bagel", "Baked goods", "Balance beam", "Banana",
    "Band-aid", "Banjo", "Barrel", "Bathroom accessory", "Bathroom cabinet",
    "Bathtub", "Beaker", "Bed", "Beer", "Bell pepper", "Belt", "Bench",
    "Bicycle helmet", "Bidet", "Billiard table", "Blender", "Book",
    "Bookcase", "Boot", "Bottle opener", "Bottle", "Bowl",
    "Bowling equipment", "Box", "Boy", "Brassiere", "Bread", "Briefcase",
    "Broccoli", "Bust", "Cabbage", "Cabinetry", "Cake stand", "Cake",
    "Calculator", "Camera", "Can opener", "Candle", "Candy", "Cantaloupe",
    "Carrot", "Cat furniture", "Ceiling fan", "Cello", "Chair", "Cheese",
    "Chest of drawers", "Chicken", "Chime", "Chisel", "Chopsticks",
    "Christmas tree", "Clock", "Closet", "Clothing", "Coat",
    "Cocktail shaker", "Cocktail", "Coconut", "Coffee cup", "Coffee table",
    "Coffee", "Coffeemaker", "Coin", "Common fig", "Computer keyboard",
    "Computer monitor", "Computer mouse", "Container", "Convenience store",
    "Cookie", "Cooking spray", "Corded phone", "Cosmetics", "Couch",
    "Countertop", "Cream", "Cricket ball", "Crutch", "Cucumber", "Cupboard",
    "Curtain", "Cutting board", "Dagger", "Dairy Product", "Desk", "Dessert",
    "Diaper", "Dice", "Digital clock", "Dishwasher", "Dog bed", "Doll",
    "Door handle", "Door", "Doughnut", "Drawer", "Dress", "Drill (Tool)",
    "Drink", "Drinking straw", "Drum", "Dumbbell", "Earrings", "Egg (Food)",
    "Envelope", "Eraser", "Face powder", "Facial care",
    "Facial tissue holder", "Fashion accessory", "Fast food", "Fax", "Fedora",
    "Filing cabinet", "Fireplace", "Flag", "Flashlight", "Flowerpot", "Flute",
    "Food processor", "Food", "Football helmet", "Frying pan", "Furniture",
    "Garden Asparagus", "Gas stove", "Girl", "Glasses", "Glove", "Goggles",
    "Grape", "Grapefruit", "Grinder", "Guacamole", "Guitar", "Hair dryer",
    "Hair spray", "Hamburger", "Hammer", "Hand dryer", "Handbag", "Harmonica",
    "Harp", "Hat", "Headphones", "Heater", "Home appliance", "Honeycomb",
    "Horizontal bar", "Hot dog", "Houseplant", "Human arm", "Human beard",
    "Human body", "Human ear", "Human eye", "Human face", "Human foot",
    "Human hair", "Human hand", "Human head", "Human leg", "Human mouth",
    "Human nose", "Humidifier", "Ice cream", "Indoor rower", "Infant bed",
    "Ipod", "Jacket", "Jacuzzi", "Jeans", "Jug", "Juice", "Kettle",
    "Kitchen & dining room table", "Kitchen appliance", "Kitchen knife",
    "Kitchen utensil", "Kitchenware", "Knife", "Ladder", "Ladle", "Lamp",
    "Lantern", "Laptop", "Lavender (Plant)", "Lemon", "Light bulb",
    "Light switch", "Lily", "Lipstick", "Loveseat", "Luggage and bags", "Man",
    "Mango", "Maracas", "Measuring cup", "Mechanical fan",
    "Medical equipment", "Microphone", "Microwave oven", "Milk", "Miniskirt",
    "Mirror", "Mixer", "Mixing bowl", "Mobile phone", "Mouse", "Muffin",
    "Mug", "Musical instrument", "Musical keyboard", "Nail (Construction)",
    "Necklace", "Nightstand", "Oboe", "Orange", "Organ (Musical Instrument)",
    "Oven", "Paper cutter", "Paper towel", "Pastry", "Peach", "Pear", "Pen",
    "Pencil case", "Pencil sharpener", "Perfume", "Personal care", "Piano",
    "Picnic basket", "Picture frame", "Pillow", "Pineapple", "Pizza cutter",
    "Plastic bag", "Plate", "Platter", "Plumbing fixture", "Pomegranate",
    "Popcorn", "Porch", "Poster", "Potato", "Power plugs and sockets",
    "Pressure cooker", "Pretzel", "Printer", "Pumpkin", "Punching bag",
    "Racket", "Radish", "Refrigerator", "Remote control", "Ring binder",
    "Rose", "Ruler", "Salad", "Salt and pepper shakers", "Sandal", "Sandwich",
    "Saucer", "Saxophone", "Scale", "Scarf", "Scissors", "Screwdriver",
    "Sculpture", "Serving tray", "Sewing machine", "Shelf", "Shirt", "Shorts",
    "Shower", "Sink", "Skirt", "Slow cooker", "Soap dispenser", "Sock",
    "Sofa bed", "Sombrero", "Spatula", "Spice rack", "Spoon", "Stairs",
    "Stapler", "Stationary bicycle", "Stethoscope", "Stool", "Strawberry",
    "Studio couch", "Suit", "Suitcase", "Sun hat", "Sunglasses", "Swim cap",
    "Swimwear", "Table tennis racket", "Table", "Tablet computer",
    "Tableware", "Tap", "Tea", "Teapot", "Teddy bear", "Telephone",
    "Television", "Tennis racket", "Tiara", "Tie", "Tin can", "Toaster",
    "Toilet paper", "Toilet", "Tomato", "Tool", "Toothbrush", "Torch",
    "Towel", "Toy", "Training bench", "Treadmill", "Tripod", "Trombone",
    "Trousers", "Trumpet", "Umbrella", "Vase", "Vegetable", "Watch",
    "Watermelon", "Whisk", "Whiteboard", "Willow", "Window blind", "Window",
    "Wine glass", "Wine rack", "Wine", "Winter melon", "Wok", "Woman",
    "Wood-burning stove", "Wrench", "Zucchini",
])

OUTDOOR_CLASSES = _lower([
    "Aircraft", "Airplane", "Alpaca", "Ambulance", "Animal", "Ant",
    "Antelope", "Auto part", "Axe", "Ball", "Balloon", "Barge",
    "Baseball bat", "Baseball glove", "Bat (Animal)", "Bear", "Bee",
    "Beehive", "Beetle", "Bicycle wheel", "Bicycle", "Billboard",
    "Binoculars", "Bird", "Blue jay", "Boat", "Bomb", "Bow and arrow",
    "Brown bear", "Building", "Bull", "Bus", "Butterfly", "Camel", "Cannon",
    "Canoe", "Car", "Carnivore", "Cart", "Castle", "Caterpillar", "Cattle",
    "Centipede", "Cheetah", "Crab", "Crocodile", "Crow", "Crown", "Deer",
    "Dinosaur", "Dog", "Dolphin", "Dragonfly", "Duck", "Eagle", "Falcon",
    "Fish", "Flower", "Flying disc", "Football", "Fountain", "Fox", "Frog",
    "Giraffe", "Goat", "Goldfish", "Golf ball", "Golf cart", "Gondola",
    "Goose", "Hedgehog", "Helicopter", "Hippopotamus", "Horse",
    "Jaguar (Animal)", "Jellyfish", "Jet ski", "Kangaroo", "Kite", "Koala",
    "Ladybug", "Land vehicle", "Leopard", "Lighthouse", "Limousine", "Lion",
    "Lizard", "Lobster", "Lynx", "Mammal", "Marine invertebrates",
    "Marine mammal", "Missile", "Monkey", "Moths and butterflies",
    "Motorcycle", "Mule", "Mushroom", "Ostrich", "Otter", "Owl", "Oyster",
    "Paddle", "Palm tree", "Panda", "Parachute", "Parking meter", "Parrot",
    "Penguin", "Person", "Pig", "Porcupine", "Rabbit", "Raccoon", "Raven",
    "Rays and skates", "Red panda", "Reptile", "Rhinoceros", "Rocket",
    "Roller skates", "Rugby ball", "Ruler", "Salad",
    "Salt and pepper shakers", "Sandal", "Sandwich", "Saucer", "Saxophone",
    "Scale", "Scarf", "Scissors", "Scoreboard", "Scorpion", "Screwdriver",
    "Sculpture", "Sea lion", "Sea turtle", "Seafood", "Seahorse", "Seat belt",
    "Segway", "Serving tray", "Sewing machine", "Shark", "Sheep", "Shelf",
    "Shellfish", "Shirt", "Shorts", "Shotgun", "Shower", "Shrimp", "Sink",
    "Skateboard", "Ski", "Skirt", "Skull", "Skunk", "Slow cooker", "Snack",
    "Snail", "Snake", "Snowboard", "Snowman", "Snowmobile", "Snowplow",
    "Sparrow", "Spatula", "Spice rack", "Spider", "Spoon", "Sports equipment",
    "Sports uniform", "Squash (Plant)", "Squid", "Squirrel", "Starfish",
    "Stationary bicycle", "Stethoscope", "Stool", "Stop sign", "Strawberry",
    "Street light", "Stretcher", "Studio couch", "Submarine sandwich",
    "Submarine", "Suit", "Suitcase", "Sun hat", "Sunglasses", "Surfboard",
    "Sushi", "Swan", "Swim cap", "Swimming pool", "Swimwear", "Sword",
    "Syringe", "Table tennis racket", "Table", "Tablet computer", "Tableware",
    "Taco", "Tank", "Tap", "Tart", "Taxi", "Tea", "Teapot", "Teddy bear",
    "Telephone", "Television", "Tennis ball", "Tennis racket", "Tent",
    "Tiara", "Tick", "Tie", "Tiger", "Tin can", "Tire", "Toaster",
    "Toilet paper", "Toilet", "Tomato", "Tool", "Toothbrush", "Torch",
    "Tortoise", "Towel", "Tower", "Toy", "Traffic light", "Traffic sign",
    "Train", "Training bench", "Treadmill", "Tree house", "Tree", "Tripod",
    "Trombone", "Trousers", "Truck", "Trumpet", "Turkey", "Turtle",
    "Umbrella", "Unicycle", "Van", "Vase", "Vegetable",
    "Vehicle registration plate", "Vehicle", "Violin", "Volleyball (Ball)",
    "Waffle iron", "Waffle", "Wall clock", "Wardrobe", "Washing machine",
    "Waste container", "Watch", "Watercraft", "Watermelon", "Weapon", "Whale",
    "Wheel", "Wheelchair", "Whisk", "Whiteboard", "Willow", "Window blind",
    "Window", "Wine glass", "Wine rack", "Wine", "Winter melon", "Wok",
    "Woman", "Wood-burning stove", "Woodpecker", "Worm", "Wrench", "Zebra",
])

# Classes reasonable in either setting
BOTH_CLASSES = _lower([
    "Beer", "Bell pepper", "Blue jay", "Book", "Bottle", "Bowl", "Boy",
    "Bread", "Broccoli", "Butterfly", "Cabbage", "Cantaloupe", "Carrot",
    "Cat", "Christmas tree", "Clothing", "Coat", "Cocktail", "Coconut",
    "Coffee", "Coin", "Common fig", "Common sunflower", "Computer mouse",
    "Cookie", "Cream", "Crocodile", "Croissant", "Cucumber", "Cupboard",
    "Curtain", "Cutting board", "Deer", "Dessert", "Digital clock", "Dog",
    "Door", "Drink", "Drum", "Duck", "Earrings", "Egg (Food)", "Elephant",
    "Envelope", "Eraser", "Face powder", "Fashion accessory", "Fast food",
    "Flag", "Flashlight", "Flower", "Flute", "Food", "Football", "Footwear",
    "Fork", "French fries", "French horn", "Frog", "Fruit", "Frying pan",
    "Garden Asparagus", "Giraffe", "Girl", "Glasses", "Glove", "Goat",
    "Goggles", "Grape", "Grapefruit", "Guacamole", "Guitar", "Hair dryer",
    "Hair spray", "Hamburger", "Hammer", "Hamster", "Hand dryer", "Handbag",
    "Hat", "Headphones", "Heater", "Honeycomb", "Horse", "Hot dog",
    "Human arm", "Human beard", "Human body", "Human ear", "Human eye",
    "Human face", "Human foot", "Human hair", "Human hand", "Human head",
    "Human leg", "Human mouth", "Human nose", "Ice cream", "Insect",
    "Invertebrate", "Jacket", "Jeans", "Juice", "Kangaroo", "Kitchen utensil",
    "Kite", "Knife", "Koala", "Ladybug", "Lemon", "Leopard", "Lily", "Lion",
    "Lizard", "Lobster", "Lynx", "Magpie", "Mammal", "Man", "Maple",
    "Maracas", "Measuring cup", "Mechanical fan", "Microphone", "Milk",
    "Miniskirt", "Mirror", "Mixer", "Mixing bowl", "Mobile phone", "Monkey",
    "Moths and butterflies", "Mouse", "Muffin", "Mug", "Mule", "Mushroom",
    "Musical instrument", "Musical keyboard", "Nail (Construction)",
    "Necklace", "Nightstand", "Oboe", "Office supplies", "Orange",
    "Organ (Musical Instrument)", "Ostrich", "Otter", "Owl", "Oyster",
    "Paddle", "Palm tree", "Pancake", "Panda", "Paper cutter", "Paper towel",
    "Parrot", "Pasta", "Pastry", "Peach", "Pear", "Pen", "Pencil case",
    "Pencil sharpener", "Penguin", "Perfume", "Person", "Personal care",
    "Personal flotation device", "Piano", "Picnic basket", "Picture frame",
    "Pig", "Pillow", "Pineapple", "Pitcher (Container)", "Pizza", "Plant",
    "Plastic bag", "Plate", "Platter", "Plumbing fixture", "Polar bear",
    "Pomegranate", "Popcorn", "Porch", "Porcupine", "Poster", "Potato",
    "Power plugs and sockets", "Pressure cooker", "Pretzel", "Printer",
    "Pumpkin", "Punching bag", "Rabbit", "Raccoon", "Racket", "Radish",
    "Ratchet (Device)", "Raven", "Rays and skates", "Red panda",
    "Refrigerator", "Remote control", "Reptile", "Rhinoceros", "Rifle",
    "Ring binder", "Rocket", "Roller skates", "Rose", "Rugby ball", "Ruler",
    "Salad", "Salt and pepper shakers", "Sandal", "Sandwich", "Saucer",
    "Saxophone", "Scale", "Scarf", "Scissors", "Scoreboard", "Scorpion",
    "Screwdriver", "Sculpture", "Sea lion", "Sea turtle", "Seafood",
    "Seahorse", "Seat belt", "Segway", "Serving tray", "Sewing machine",
    "Shark", "Sheep", "Shelf", "Shellfish", "Shirt", "Shorts", "Shotgun",
    "Shower", "Shrimp", "Sink", "Skateboard", "Ski", "Skirt", "Skull",
    "Skunk", "Slow cooker", "Snack", "Snail", "Snake", "Snowboard", "Snowman",
    "Snowmobile", "Snowplow", "Sparrow", "Spatula", "Spice rack", "Spider",
    "Spoon", "Sports equipment", "Sports uniform", "Squash (Plant)", "Squid",
    "Squirrel", "Starfish", "Stationary bicycle", "Stethoscope", "Stool",
    "Stop sign", "Strawberry", "Street light", "Stretcher", "Studio couch",
    "Submarine sandwich", "Submarine", "Suit", "Suitcase", "Sun hat",
    "Sunglasses", "Surfboard", "Sushi", "Swan", "Swim cap", "Swimming pool",
    "Swimwear", "Sword", "Syringe", "Table tennis racket", "Table",
    "Tablet computer", "Tableware", "Taco", "Tank", "Tap", "Tart", "Taxi",
    "Tea", "Teapot", "Teddy bear", "Telephone", "Television", "Tennis ball",
    "Tennis racket", "Tent", "Tiara", "Tick", "Tie", "Tiger", "Tin can",
    "Tire", "Toaster", "Toilet paper", "Toilet", "Tomato", "Tool",
    "Toothbrush", "Torch", "Tortoise", "Towel", "Tower", "Toy",
    "Traffic light", "Traffic sign", "Train", "Training bench", "Treadmill",
    "Tree house", "Tree", "Tripod", "Trombone", "Trousers", "Truck",
    "Trumpet", "Turkey", "Turtle", "Umbrella", "Unicycle", "Van", "Vase",
    "Vegetable", "Vehicle registration plate", "Vehicle", "Violin",
    "Volleyball (Ball)", "Waffle iron", "Waffle", "Wall clock", "Wardrobe",
    "Washing machine", "Waste container", "Watch", "Watercraft", "Watermelon",
    "Weapon", "Whale", "Wheel", "Wheelchair", "Whisk", "Whiteboard", "Willow",
    "Window blind", "Window", "Wine glass", "Wine rack", "Wine",
    "Winter melon", "Wok", "Woman", "Wood-burning stove", "Woodpecker",
    "Worm", "Wrench", "Zebra", "Zucchini",
])

_MODE_CLASSES = {
    "indoor": INDOOR_CLASSES | BOTH_CLASSES,
    "outdoor": OUTDOOR_CLASSES | BOTH_CLASSES,
}


def allowed_classes(filter_mode: str) -> frozenset[str] | None:
    """Lower-cased class names admitted by a filter mode, ``None`` for all."""
    return _MODE_CLASSES.get(filter_mode.lower())
