from . import auth, participants, checkpoints, competitions, race_events, races, timings

__all__ = ["auth", "participants", "checkpoints", "competitions", "race_events", "races", "timings"]
