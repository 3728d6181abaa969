"""Security tests for Docuflow

This module contains security-focused tests including:
- Authentication bypass attempts
- Tenant escape/isolation attacks
- SQL injection prevention
"""
