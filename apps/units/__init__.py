"""Units app package.

Holds the rental unit registry: every physical shelf, table or display
window the marketplace can allocate, together with its catalog price and
the back-references to the contract and vendor currently occupying it.
"""
