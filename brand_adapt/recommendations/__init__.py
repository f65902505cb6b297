"""
Recommendation pipeline: generate → resolve → rank.

Modules
-------
generator : four deterministic strategies (visual, messaging, content,
            audience) + generate_candidates().
resolver  : detect_conflicts() + resolve() — one surviving candidate per
            affected attribute.
steps     : per-attribute implementation-step templates.
ranker    : effective_score() + rank() — priority band, then personalised
            impact, then id.
"""
