"""Schedule recalculation (forward pass).

Only ever pushes tasks later. Unsatisfiable constraints come back as warning
strings next to the recalculated project; nothing here raises on bad data.
"""
