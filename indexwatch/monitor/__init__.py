"""indexwatch monitor — what the presentation layer sees.

Modules
-------
projection
    ``MonitorView``: a frozen, point-in-time projection of the
    ``ConnectionMachine``.
renderer
    ``MonitorRenderer`` turns ``MonitorView`` (and ``AddressReport``)
    into Rich renderables for terminal display.
"""
