"""
Check-in and live-tracking eligibility for doctor job sessions.
"""
