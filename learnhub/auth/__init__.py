"""
Identity and enrollment collaborators for the quiz engine.

Session issuance lives elsewhere; this package only carries the user,
course, cohort and enrollment tables the quiz engine reads, and the
entitlement checks built on top of them.
"""
