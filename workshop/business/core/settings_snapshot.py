"""
Immutable view of the business settings row.

Read once per operation and passed explicitly into the components that
need it (invoice builder, completion manager).
"""

from dataclasses import dataclass
from workshop.data.core.setting import Setting


@dataclass(frozen=True)
class SettingsSnapshot:
    company_name: str = 'Workshop'
    default_currency: str = 'USD'
    default_tax_rate: float = 10.0
    invoice_due_days: int = 30

    @classmethod
    def load(cls) -> 'SettingsSnapshot':
        """Snapshot the settings row; defaults apply when no row exists yet"""
        setting = Setting.current()
        if setting is None:
            return cls()
        return cls(
            company_name=setting.company_name,
            default_currency=setting.default_currency,
            default_tax_rate=setting.default_tax_rate,
            invoice_due_days=setting.invoice_due_days,
        )

    def tax_rate_for(self, product_tax_rate):
        return self.default_tax_rate if product_tax_rate is None else product_tax_rate
