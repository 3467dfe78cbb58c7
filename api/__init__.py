"""MotorPilot HTTP service."""
