from dependency_injector import containers, providers

from revshare.config import Settings
from revshare.database.session import get_db
from revshare.providers.smoobu import SmoobuClient
from revshare.services.earnings_service import EarningsService
from revshare.services.payout_service import PayoutService
from revshare.services.revenue_service import RevenueService
from revshare.services.settlement_service import SettlementService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class RepositoryModule(containers.DeclarativeContainer):
    """Database session."""

    get_db = providers.Resource(get_db)


class ProviderModule(containers.DeclarativeContainer):
    """External revenue providers."""

    config = providers.DependenciesContainer()

    smoobu_client = providers.Singleton(SmoobuClient, settings=config.config)


class ServiceModule(containers.DeclarativeContainer):
    """Service layer dependencies."""

    config = providers.DependenciesContainer()
    repositories = providers.DependenciesContainer()
    external = providers.DependenciesContainer()

    revenue_service = providers.Factory(
        RevenueService,
        db=repositories.get_db,
        settings=config.config,
        provider=external.smoobu_client,
    )
    earnings_service = providers.Factory(EarningsService, db=repositories.get_db, settings=config.config)
    settlement_service = providers.Factory(SettlementService, db=repositories.get_db, settings=config.config)
    payout_service = providers.Factory(PayoutService, db=repositories.get_db)


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "revshare.routers.revenue_router",
            "revshare.routers.earnings_router",
            "revshare.routers.settlement_router",
            "revshare.routers.smoobu_router",
        ],
    )

    config = providers.Container(ConfigModule)
    repositories = providers.Container(RepositoryModule)
    external = providers.Container(ProviderModule, config=config)
    services = providers.Container(
        ServiceModule, config=config, repositories=repositories, external=external
    )
