"""Extension points for collaborators that react to reservation changes.

Receivers are called synchronously, after the change has been committed::

    @reservation_status_changed.connect
    def notify(sender, reservation, old_status, new_status):
        ...
"""

from blinker import Namespace

_signals = Namespace()

reservation_created = _signals.signal("reservation-created")
reservation_status_changed = _signals.signal("reservation-status-changed")
