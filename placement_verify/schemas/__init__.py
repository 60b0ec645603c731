"""
Schemas module - Request/Response schemas for API endpoints.

Difference from models:
- Models: Internal domain records (organizations, KYC sessions, documents)
- Schemas: API contract (what client sends/receives)
"""

from placement_verify.schemas.schemas import ErrorResponse, HealthResponse

__all__ = ["ErrorResponse", "HealthResponse"]
