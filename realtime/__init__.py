"""Socket.IO server, client event handlers and the broadcaster used by the
booking and location apps."""
