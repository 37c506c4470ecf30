"""
PCR bank simulation and boot-stage predictors.
"""

__all__ = ['simulator', 'pcr04', 'pcr09', 'pcr11']
