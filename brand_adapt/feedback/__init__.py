"""
Feedback loop: the append-only ledger and the per-brand personalizer.

Modules
-------
ledger       : FeedbackLedger — per-brand ordered, append-only event log.
personalizer : apply_feedback() + Personalizer — bounded multiplicative
               weight updates replayed from the ledger.
"""
