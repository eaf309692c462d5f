"""Warning accrual, expiry and escalation."""
