"""Credential Vault Meta information.
   Credential Vault stores per-user site credentials with passwords
   sealed in AES-256-GCM envelopes.
"""
__title__ = 'credential_vault'
__description__ = (
   'Credential Vault stores per-user site credentials with passwords '
   'sealed in AES-256-GCM envelopes.'
)
__version__ = '0.1.0'
__license__ = 'Apache-2.0'
