"""
authorguard - Document-ownership authorization filter.

authorguard sits in front of a document store and enforces a single rule:
a non-privileged actor may only read, modify, delete or discover documents
they authored. It provides:
- Pre-mutation ownership checks (one store read per check)
- Query rewriting that narrows searches to the actor's documents
- Post-read checks for single and multi-document retrieval
- A static dispatch table from host lifecycle stages to these checks

Example usage:
    $ authorguard stages
    $ authorguard check request.yaml --store fixtures.yaml
"""

__version__ = "0.1.0"
__author__ = "authorguard Contributors"

__all__ = [
    "__version__",
    "__author__",
]
