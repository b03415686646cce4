"""
Protocols that drive the picture.

- scenario: Named states and the autonomous scenario driver
- consensus: Generation and aging of consensus lines
"""
