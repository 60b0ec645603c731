"""
Placement Verification
Identity and organization verification for the job-placement platform.

Architecture:
- OrganizationsService: organization registration + registration verification
- ProfileService: derived KYC views over an async identity Store
- FastAPI adapter: auth, routing, domain error -> JSON response mapping
"""

__version__ = "1.0.0"
