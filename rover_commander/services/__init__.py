# Service layer for Rover Commander
# - rover_client: async HTTP client for the rover's /mode, /action, /speed, /status
# - preferences:  saved rover address and control mode (NiceGUI app storage)
# - session:      session controller (mode, commands, link health, telemetry)
