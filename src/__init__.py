"""
Deployment Financial Lifecycle Engine - Source Package

Tracks a service member's deployment from notification to homecoming:
phase, special pays and tax treatment, a reduced-expense budget, savings
against milestones, countdown figures, and an offline mutation queue.

DESIGN PRINCIPLES:
1. Canonical inputs in, derived figures recomputed after every change
2. Every figure is an estimate, never an authoritative pay statement
3. Missing preconditions are skipped, not raised
4. Every state change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Deployment Finance Team"
