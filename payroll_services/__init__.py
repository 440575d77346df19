"""
payroll_services -- Orchestration over the payroll engines.

Services compose the pure engines with injected collaborators (a clock,
a rate source, a structure lookup).  They sit at the top of the
dependency graph: nothing else imports from payroll_services.
"""

from payroll_services.preview_service import (
    PayrollPreview,
    PayrollPreviewService,
    build_payroll_preview,
)

__all__ = [
    "PayrollPreview",
    "PayrollPreviewService",
    "build_payroll_preview",
]
