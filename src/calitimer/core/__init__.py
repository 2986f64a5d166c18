"""Timing core: phase calculation, tick source and timer state machine."""
