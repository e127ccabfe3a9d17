"""Short link allocation and click accounting."""

from .shortcode import ShortCodeGenerator
from .service import LinkShortenerService
from .accounting import ClickRecorder
from .importer import import_links

__all__ = ["ShortCodeGenerator", "LinkShortenerService", "ClickRecorder", "import_links"]
