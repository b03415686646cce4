"""
Chain Rollup: three converging chains, drawn as they synchronize.

A tick-driven geometry and animation core. Three equal circles glide
together through a scripted scenario while consensus lines spark
between boundary nodes, concentrating where the circles overlap.
Rendering is left to whoever consumes the snapshots.
"""

__version__ = "0.1.0"
