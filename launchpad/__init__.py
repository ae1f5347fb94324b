"""
Launchpad campaign lifecycle automation.

Derives campaign phases from schedule anchors, persists phase transitions
and keeps funding statistics in step with the on-chain pools.
"""
__version__ = '0.1.0'
