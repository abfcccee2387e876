"""
Purchase reconciliation engine.

- models:          immutable records and result types
- status:          lifecycle status derived from item quantities
- timeline:        chronology over purchase events
- reconciliation:  net amount, payment status, refund due, composite badge
- service:         loads snapshots through the repositories
- statement:       HTML reconciliation statement
"""
