"""RCM Claim Core Backend Package.

This package provides the claim validation and auto-correction pipeline and
the accounts-receivable aging engine for a medical practice back office:

- Versioned rule catalog and claim validator
- Mechanical auto-corrections with confidence and review routing
- Receivable ledger, aging buckets and collection KPIs
- Claim lifecycle coordinator with clearinghouse submission

Usage:
    # Development (from project root):
    uvicorn rcm_backend.app:app --reload --port 8080

Modules:
    app: FastAPI application entry point
    rules: Rule catalog and claim validator
    corrections: Auto-correction engine
    aging: Receivables, ledger and A/R aging
    lifecycle: Claim states and lifecycle coordinator
    gateway: Clearinghouse submission client
    audit: SQLite audit trail
    settings: Practice settings loaded from YAML
"""

__version__ = "0.1.0"
