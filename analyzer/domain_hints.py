"""Domain hint inference from file and dependency naming patterns."""

from typing import Iterable, List, Tuple

# (tag, keywords) matched against lower-cased file paths
FILENAME_HINTS: List[Tuple[str, Tuple[str, ...]]] = [
    ("e-commerce", ("cart", "product", "order", "payment", "checkout")),
    ("food-restaurant", ("menu", "recipe", "order", "delivery", "food")),
    ("social-media", ("post", "comment", "like", "follow", "profile")),
    ("task-management", ("task", "todo", "project", "deadline")),
    ("blog-cms", ("blog", "post", "article", "content")),
    ("analytics-dashboard", ("dashboard", "analytics", "chart", "report")),
    ("education", ("course", "lesson", "quiz", "student")),
    ("health-fitness", ("workout", "exercise", "health", "fitness")),
]

# (tag, dependency names) matched exactly against lower-cased dependency names
DEPENDENCY_HINTS: List[Tuple[str, Tuple[str, ...]]] = [
    ("payment-processing", ("stripe", "paypal-rest-sdk", "square", "braintree")),
    ("location-services", ("google-maps", "@googlemaps/js-api-loader", "mapbox", "mapbox-gl", "leaflet", "geopy")),
    ("image-processing", ("sharp", "jimp", "canvas", "pillow")),
    ("email-services", ("nodemailer", "sendgrid", "@sendgrid/mail", "aws-ses")),
    ("authentication", ("auth0", "firebase-auth", "next-auth", "passport", "django-allauth")),
    ("mongodb-database", ("mongoose", "mongodb", "pymongo")),
    ("orm-database", ("prisma", "@prisma/client", "sequelize", "typeorm", "sqlalchemy")),
]


def extract_domain_hints(file_names: Iterable[str], dependency_names: Iterable[str]) -> List[str]:
    """Collect every matching domain tag, deduplicated, in table order.

    Tags are not mutually exclusive: ``orders/`` hints at both e-commerce and
    food delivery.
    """
    paths = [name.lower() for name in file_names if isinstance(name, str)]
    deps = {name.lower() for name in dependency_names if isinstance(name, str)}

    hints: List[str] = []
    for tag, keywords in FILENAME_HINTS:
        if any(keyword in path for path in paths for keyword in keywords):
            hints.append(tag)
    for tag, names in DEPENDENCY_HINTS:
        if deps.intersection(names):
            hints.append(tag)

    # Preserve first occurrence
    return list(dict.fromkeys(hints))
