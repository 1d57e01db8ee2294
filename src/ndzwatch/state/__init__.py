"""State/store layer.

Single source of truth for which drones violated the zone recently and
how new observations are folded into that record.
"""
