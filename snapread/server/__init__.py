"""HTTP API for the SnapRead library and playback planner."""
