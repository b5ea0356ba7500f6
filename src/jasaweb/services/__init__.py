"""
Domain services: one class per resource, each wrapping a database session.
"""

from .audit import AuditService
from .base import BaseCrudService, slugify, snapshot
from .bi import BusinessIntelligenceService
from .cms import BlogService, CmsService, TemplateService
from .dashboard import ClientDashboardService
from .invoices import InvoiceService
from .pricing import PricingService
from .projects import ProjectService
from .tickets import TicketService
from .users import AdminUserService, OrganizationService

__all__ = [
    "AdminUserService",
    "AuditService",
    "BaseCrudService",
    "BlogService",
    "BusinessIntelligenceService",
    "ClientDashboardService",
    "CmsService",
    "InvoiceService",
    "OrganizationService",
    "PricingService",
    "ProjectService",
    "TemplateService",
    "TicketService",
    "slugify",
    "snapshot",
]
