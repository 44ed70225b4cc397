"""Telemetry subsystem.

ARCHITECTURAL INVARIANT: telemetry is a side channel. Nothing in this
package may change what the proxied program prints or the exit code the
caller sees.

- Events are only ever appended to local JSONL logs under the cmdproxy home.
- A failed write becomes a notification; it is never raised to a run path.
- Nothing here is sent over the network.
"""
