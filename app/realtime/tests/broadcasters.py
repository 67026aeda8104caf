"""
Recording broadcaster for tests.

Point ``settings.REALTIME_BROADCASTER`` at ``recording_broadcaster`` (the
``broadcaster`` fixture does this) and every service that resolves its
broadcaster with get_broadcaster() records into RECORDER instead of the
channel layer.
"""

from core.exceptions import TransportError

from realtime.broadcaster import Broadcaster


class RecordingBroadcaster(Broadcaster):
    """Keeps every published (event, scope, payload) in order."""

    def __init__(self):
        self.published = []
        self.fail = False

    def publish(self, event, scope, payload):
        if self.fail:
            raise TransportError("channel layer unavailable")
        self.published.append((event, scope, payload))

    def reset(self):
        self.published = []
        self.fail = False

    def events(self, name=None):
        """Published entries, optionally only those named ``name``."""
        return [entry for entry in self.published if name is None or entry[0] == name]

    def payloads(self, name):
        return [payload for _, _, payload in self.events(name)]


RECORDER = RecordingBroadcaster()


def recording_broadcaster():
    return RECORDER
