from dataclasses import dataclass

from ..application.services.credential_service import CredentialService
from ..application.services.ledger_service import TransactionLedger
from ..application.services.report_service import ReportService
from ..application.services.token_service import TokenService
from ..domain.ports.persistence import PersistenceGateway
from .config import Settings


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    persistence: PersistenceGateway
    token_service: TokenService
    credential_service: CredentialService
    ledger: TransactionLedger
    report_service: ReportService
