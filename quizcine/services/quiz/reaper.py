import time

from quizcine import socketio


def sweep_idle_rooms(app, registry) -> list:
    """Run one eviction pass, logging instead of raising on failure."""
    try:
        evicted = registry.reap_idle()
    except Exception as exc:
        app.logger.error(f"[reaper-error] {exc}")
        return []
    if evicted:
        app.logger.info(f"[reaper-sweep] evicted={len(evicted)} remaining={len(registry)}")
    return evicted


def start_room_reaper(app, registry) -> None:
    """Periodically evict rooms idle for longer than ``ROOM_IDLE_TTL_SEC``.

    - No-ops in TESTING mode or when no TTL is configured
    - Runs as a Socket.IO background task for the process lifetime
    """
    ttl = int(app.config.get('ROOM_IDLE_TTL_SEC', 0))
    if ttl <= 0 or app.config.get('TESTING'):
        return
    interval = max(1, int(app.config.get('ROOM_REAPER_INTERVAL_SEC', 60)))
    app.logger.info(f"[reaper-start] idle_ttl={ttl}s interval={interval}s")

    def _worker():
        while True:
            time.sleep(interval)
            sweep_idle_rooms(app, registry)

    socketio.start_background_task(_worker)
