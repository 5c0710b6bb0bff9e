"""Testing – fakes for publish and replay tests."""
from mp_eventsourcing.testing.fakes import FailingProjector, FakeClock, RecordingProjector

__all__ = ["FailingProjector", "FakeClock", "RecordingProjector"]
