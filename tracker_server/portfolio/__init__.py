"""Portfolio ledger and metrics domain package."""

from tracker_server.portfolio.ledger import Ledger, derive
from tracker_server.portfolio.models import AssetDefinition, Operation
from tracker_server.portfolio.portfolio_service import PortfolioService

__all__ = ["AssetDefinition", "Ledger", "Operation", "PortfolioService", "derive"]
