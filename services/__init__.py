"""Service manager, startup configuration and repair interfaces."""

from services.repair_api import AlternateRepairInvoker
from services.service_controller import ServiceController
from services.startup_config import StartupConfigStore

__all__ = ["AlternateRepairInvoker", "ServiceController", "StartupConfigStore"]
