# Service layer for the game server panel
# - status_client: authenticated HTTP status query and start request
# - lifecycle:     state machine driving the bounded wait-for-online loop
# - poll_timer:    cancellable one-shot timer owned by the state machine
