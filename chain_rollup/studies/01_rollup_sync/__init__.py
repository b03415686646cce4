"""
Study 01: Rollup Sync

Three chains, one scenario.

Questions to explore:
- When do the first intersection lines appear?
- How does the ambient line opacity track the ratio?
- What does the batch look like at full convergence?
"""
