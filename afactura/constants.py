"""Seed data and fixed lists used by the invoicing flows."""

from afactura.models.invoice import Client, CompanyProfile

EXEMPTION_REASONS = [
    "M02 - Transmissão de bens e serviço não sujeita",
    "M04 - Isento Artigo 12.º alínea a) do CIVA",
    "M10 - Isento Artigo 12.º alínea e) do CIVA",
    "M11 - Regime de não sujeição",
]

DEFAULT_COMPANY = CompanyProfile(
    name="Minha Empresa, Lda",
    nif="5001234567",
    address="Rua Rainha Ginga, Luanda, Angola",
    phone="+244 923 000 000",
    email="geral@minhaempresa.ao",
    regime="Geral",
)

# Generic final consumer, used when the buyer gives no NIF.
FINAL_CONSUMER = Client(
    id="c1",
    name="Cliente Particular",
    nif="999999999",
    address="Luanda",
)
