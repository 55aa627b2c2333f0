from dataclasses import dataclass

from ..application.services.credential_service import CredentialService
from ..application.services.product_service import ProductService
from ..application.services.shop_service import ShopService
from ..application.services.verification_service import VerificationService
from ..domain.ports.persistence import PersistenceGateway
from ..services.token_service import TokenService
from .config import Settings


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    persistence: PersistenceGateway
    token_service: TokenService
    verification_service: VerificationService
    credential_service: CredentialService
    shop_service: ShopService
    product_service: ProductService
