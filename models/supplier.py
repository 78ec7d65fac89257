from pydantic import BaseModel


class SupplierContact(BaseModel):
    """
    A supplier from the optional contact sheet (TEDARİKÇİ LİSTESİ).
    Joined to order lines by supplier code only; a missing contact is normal.
    """
    code: str                           # Satıcı
    name: str = ""                      # Satıcının adı
    scope: str = ""                     # Kapsam
    sub_scope: str = ""                 # Alt Kapsam
    city: str = ""
    region: str = ""
    purchasing_specialist: str = ""     # Satınalma Uzmanı
    rep_name: str = ""                  # Tedarikçi Temsilcisi
    rep_phone: str = ""
    rep_email: str = ""

    @property
    def has_email(self) -> bool:
        return "@" in self.rep_email
