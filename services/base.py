"""Base services container for dependency injection."""

from config import Config
from db.manager import DatabaseManager


class Services:
    """Container for all application services.

    This class provides a centralized way to access all services and makes
    it easy to inject mock services for testing.

    Args:
        config: Application configuration object.
        db_manager: Optional database manager for testing. If provided, config is ignored.
    """

    def __init__(self, config: Config, db_manager=None):
        """Initialize services with configuration.

        Args:
            config: Config object containing application configuration.
            db_manager: Optional database manager for dependency injection (testing).
                       If None, creates DatabaseManager from config.
        """
        self.config = config
        self.db_manager = db_manager or DatabaseManager(config)

        # Lazy import to avoid circular dependencies
        from services.parts import PartService
        from services.categories import CategoryService

        self.parts = PartService(self.db_manager)
        # Every consumer that tags items with categories is registered here so
        # category deletes can see its references.
        self.categories = CategoryService(
            self.db_manager,
            reference_counters=[self.parts],
            list_page_size=config.list_page_size,
        )
