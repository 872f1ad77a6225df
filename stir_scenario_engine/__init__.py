"""
STIR Scenario Engine

Production-style modules:
- scenarios: scenario objects + config loader + comparison/calibration runners
- curves: daily overnight-rate projection (hikes, turns, weekend/holiday carry)
- instruments: outright/spread/fly/condor/defly structures + combination builders
- market_data: monthly and IMM-quarterly instrument strips from a daily curve
- risk: per-meeting window sensitivities
- holidays: holiday calendar (live fetch + static fallback)
- utils: date helpers (IMM dates, last business day, contract codes)
- config: calendar windows, FOMC dates, defaults

Dashboard/rendering layer should import from this package.
"""
