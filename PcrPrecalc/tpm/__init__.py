"""
Live TPM access used to compare predictions with a booted machine.
"""

__all__ = ['esapi_interface']
