from briefflow.db.repositories.approvals import ApprovalsRepository
from briefflow.db.repositories.audit_logs import AuditLogsRepository
from briefflow.db.repositories.briefs import BriefsRepository
from briefflow.db.repositories.clubs import BrandsRepository, ClubsRepository
from briefflow.db.repositories.notifications import NotificationsRepository
from briefflow.db.repositories.production_tasks import ProductionTasksRepository
from briefflow.db.repositories.strategy_documents import StrategyDocumentsRepository
from briefflow.db.repositories.templates import TemplatesRepository
from briefflow.db.repositories.users import UsersRepository
