"""
Studies: Scripted runs to watch the system.

Each study is a script. Watch before you change anything.

Study progression:
1. Rollup sync - the full scenario, init through step2
"""
