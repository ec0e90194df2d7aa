"""
Bilingual (Finnish / English) non-disclosure agreement template.
"""

from datetime import date
from typing import Optional

_TERM_WORDS_FI = {1: "yhden", 2: "kahden"}
_TERM_WORDS_EN = {1: "one", 2: "two"}


def _lines(*values: Optional[str]) -> str:
    return "\n".join(v or "" for v in values)


def format_company_address(address: Optional[str], city: Optional[str], country: Optional[str]) -> str:
    """Join the non-empty address parts as "address, city, country"."""
    return ", ".join(part for part in (address, city, country) if part)


def generate_nda_template(
    company_name: str,
    recipient_name: str,
    recipient_email: str,
    purpose: str = "M&A Due Diligence",
    term_years: Optional[int] = 3,
    company_business_id: Optional[str] = None,
    company_address: Optional[str] = None,
    recipient_company: Optional[str] = None,
    recipient_address: Optional[str] = None,
    effective_date: Optional[str] = None,
) -> str:
    """
    Render the NDA as markdown.

    Args:
        company_name: Disclosing party
        recipient_name: Receiving party
        recipient_email: Receiving party email
        purpose: Purpose of the disclosure
        term_years: Validity in years (3 when not given)
        effective_date: Date shown in the header, today in Finnish format by default

    Returns:
        Markdown document
    """
    term = term_years or 3
    today = date.today()
    effective = effective_date or f"{today.day}.{today.month}.{today.year}"
    term_fi = _TERM_WORDS_FI.get(term, "kolmen")
    term_en = _TERM_WORDS_EN.get(term, "three")

    disclosing = _lines(
        company_name,
        f"Y-tunnus / Business ID: {company_business_id}" if company_business_id else "",
        company_address,
    )
    receiving = _lines(
        recipient_name,
        recipient_email,
        f"Yritys / Company: {recipient_company}" if recipient_company else "",
        recipient_address,
    )

    return f"""
# SALASSAPITOSOPIMUS
## NON-DISCLOSURE AGREEMENT

**Päivämäärä / Date:** {effective}

---

## 1. OSAPUOLET / PARTIES

**Tietojen luovuttaja / Disclosing Party:**
{disclosing}

**Tietojen vastaanottaja / Receiving Party:**
{receiving}

---

## 2. TARKOITUS / PURPOSE

Tämä salassapitosopimus ("Sopimus") määrittelee ehdot, joilla Tietojen luovuttaja voi luovuttaa luottamuksellisia tietoja Tietojen vastaanottajalle seuraavaa tarkoitusta varten:

This Non-Disclosure Agreement ("Agreement") sets forth the terms under which the Disclosing Party may disclose confidential information to the Receiving Party for the following purpose:

**{purpose}**

---

## 3. LUOTTAMUKSELLISET TIEDOT / CONFIDENTIAL INFORMATION

"Luottamuksellisilla tiedoilla" tarkoitetaan kaikkia tietoja, jotka liittyvät Tietojen luovuttajan liiketoimintaan, tuotteisiin, palveluihin tai suunnitelmiin, on merkitty luottamuksellisiksi tai jotka luonteensa puolesta tulisi ymmärtää luottamuksellisiksi. Näitä ovat muun muassa taloudelliset tiedot, liiketoimintasuunnitelmat, asiakastiedot, tekniset tiedot, hinnoittelu ja immateriaalioikeudet.

"Confidential Information" means all information that relates to the Disclosing Party's business, products, services or plans, is marked as confidential, or should reasonably be understood as confidential. This includes financial information, business plans, customer information, technical information, pricing and intellectual property.

---

## 4. VELVOLLISUUDET / OBLIGATIONS

Tietojen vastaanottaja sitoutuu pitämään Luottamukselliset tiedot ehdottoman salassa, käyttämään niitä ainoastaan sovittuun tarkoitukseen ja rajoittamaan niiden saatavuuden henkilöihin, joiden on välttämätöntä saada ne. Tietoja ei saa kopioida, paljastaa kolmansille osapuolille eikä käyttää omaksi hyödyksi.

The Receiving Party agrees to keep all Confidential Information strictly confidential, use it solely for the agreed purpose and limit access to those who need to know. The information may not be copied, disclosed to third parties or used for the Receiving Party's own benefit.

---

## 5. POIKKEUKSET / EXCEPTIONS

Salassapitovelvollisuus ei koske tietoja, jotka olivat julkisia ennen luovutusta, tulevat julkisiksi ilman Tietojen vastaanottajan syytä, olivat vastaanottajan hallussa ennestään, on saatu laillisesti kolmannelta osapuolelta, on kehitetty itsenäisesti tai on luovutettava lain tai viranomaisen määräyksen perusteella.

The confidentiality obligation does not apply to information that was public before disclosure, becomes public without fault of the Receiving Party, was already in its possession, was lawfully obtained from a third party, was independently developed, or must be disclosed by law or regulatory requirement.

---

## 6. TIETOJEN PALAUTUS / RETURN OF INFORMATION

Tietojen luovuttajan pyynnöstä tai Sopimuksen päättyessä Tietojen vastaanottaja palauttaa tai tuhoaa kaikki Luottamukselliset tiedot ja vahvistaa tuhoamisen kirjallisesti.

Upon request of the Disclosing Party or termination of this Agreement, the Receiving Party shall return or destroy all Confidential Information and confirm the destruction in writing.

---

## 7. SOPIMUKSEN KESTO / TERM

Tämä Sopimus on voimassa **{term} ({term_fi}) vuoden ajan** allekirjoituspäivämäärästä. Salassapitovelvollisuus jatkuu Sopimuksen päättymisen jälkeen.

This Agreement shall remain in effect for **{term} ({term_en}) years** from the date of signature. The confidentiality obligation continues after termination.

---

## 8. SOPIMUSRIKKOMUS / BREACH

Sopimuksen rikkominen voi aiheuttaa korjaamatonta vahinkoa. Tietojen luovuttajalla on oikeus vaatia kieltotuomiota, täyttä vahingonkorvausta ja kohtuullisia oikeudenkäyntikuluja.

Breach may cause irreparable harm. The Disclosing Party may seek injunctive relief, full compensation for damages and reasonable legal costs.

---

## 9. YLEISET EHDOT / GENERAL TERMS

Tähän Sopimukseen sovelletaan Suomen lakia. Erimielisyydet ratkaistaan ensisijaisesti neuvottelemalla. Jos neuvottelut eivät johda ratkaisuun 30 päivän kuluessa, riita ratkaistaan Helsingin käräjäoikeudessa. Muutokset on tehtävä kirjallisesti.

This Agreement shall be governed by the laws of Finland. Disputes shall be resolved primarily through negotiation. If negotiations do not lead to resolution within 30 days, disputes shall be settled in the District Court of Helsinki. Amendments must be made in writing.

---

## 10. ALLEKIRJOITUKSET / SIGNATURES

**Tietojen luovuttaja / Disclosing Party:**

{company_name}

_________________________________
Allekirjoitus / Signature

**Tietojen vastaanottaja / Receiving Party:**

{recipient_name}
{recipient_company or ""}

_________________________________
Allekirjoitus / Signature

---

**Tämä dokumentti on luotu BizExit-järjestelmällä**
**This document was created using BizExit platform**
""".strip()
