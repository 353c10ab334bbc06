import threading


def start_timer(delay_seconds, callback, *args):
    """Run *callback* once after *delay_seconds* on a daemon thread.

    Daemon timers do not keep the interpreter alive; whatever is still
    pending at shutdown is simply dropped.
    """
    timer = threading.Timer(max(delay_seconds, 0), callback, args=args)
    timer.daemon = True
    timer.start()
    return timer
