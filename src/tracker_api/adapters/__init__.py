"""
Adapter layer for the Learning Tracker API.

Contains the two fulfillment paths for item operations: the instrumented
local store and the peer client used in ui-proxy mode.
"""
