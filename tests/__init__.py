"""
Test package for the Resuscitation Tracker.

v1.2: Test suite covering:
- Arrest session phases, rhythm cycle and timers
- Drug eligibility and reminders
- Undo snapshots and reset/archive
- Dosage rules, event log, export summary and logbook
"""
