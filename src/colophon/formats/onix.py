# ABOUTME: ONIX for Books encoders (3.0 and 2.1): one <Product> per work in an ONIXMessage.
# ABOUTME: Code lists (roles, product forms, subject schemes) come from the format's vocabularies.

from collections.abc import Sequence
from datetime import datetime

from lxml import etree

from colophon.formats.base import (
    XmlBuilder,
    as_utc,
    require_timestamp,
    serialize_fragment,
    xml_envelope,
)
from colophon.formats.spec import FormatSpecification
from colophon.metadata.types import Work

ONIX_NAMESPACE = "http://ns.editeur.org/onix/3.0/reference"
ONIX21_NAMESPACE = "http://www.editeur.org/onix/2.1/reference"

# ONIX code list 81 values used for keyword subjects.
_KEYWORD_SCHEME = "20"


def _product_head(xml: XmlBuilder, work: Work, spec: FormatSpecification) -> etree._Element:
    """Product element with its record reference and product identifiers.

    Identifier schemes without a ProductIDType in the "product_id_types"
    option are left out of the record.
    """
    product = xml.element("Product")
    prefix = spec.option("record_reference_prefix", "urn:colophon:")
    xml.sub(product, "RecordReference", f"{prefix}{work.work_id}")
    xml.sub(product, "NotificationType", "03")
    xml.sub(product, "RecordSourceType", "01")

    id_types = spec.option("product_id_types", {})
    for identifier in work.identifiers:
        id_type = id_types.get(identifier.scheme)
        if id_type is None:
            continue
        ident = xml.sub(product, "ProductIdentifier")
        xml.sub(ident, "ProductIDType", id_type)
        value = identifier.value
        if identifier.scheme == "isbn13":
            value = value.replace("-", "")
        xml.sub(ident, "IDValue", value)
    return product


class OnixEncoder:
    """Encodes works as ONIX 3.0 reference-tag Product records.

    Platform profiles reuse this encoder with their own options; setting
    "include_prices" to False marks every product as unpriced.
    """

    def encode(self, work: Work, spec: FormatSpecification) -> bytes:
        xml = XmlBuilder(spec, work.work_id)
        product = _product_head(xml, work, spec)
        self._descriptive_detail(xml, product, work, spec)
        if work.abstract:
            collateral = xml.sub(product, "CollateralDetail")
            text = xml.sub(collateral, "TextContent")
            xml.sub(text, "TextType", "03")
            xml.sub(text, "ContentAudience", "00")
            xml.sub(text, "Text", work.abstract)
        self._publishing_detail(xml, product, work)
        self._product_supply(xml, product, work, spec)
        return serialize_fragment(product)

    def _descriptive_detail(
        self, xml: XmlBuilder, product: etree._Element, work: Work, spec: FormatSpecification
    ) -> None:
        detail = xml.sub(product, "DescriptiveDetail")
        xml.sub(detail, "ProductComposition", "00")
        if work.product_form:
            forms = spec.vocabulary_map("product_form")
            xml.sub(detail, "ProductForm", forms.translate(work.product_form, work.work_id))
            form_detail = spec.option("product_form_detail", {}).get(work.product_form)
            if form_detail:
                xml.sub(detail, "ProductFormDetail", form_detail)
        if work.license and work.product_form in spec.option("digital_forms", frozenset()):
            license_el = xml.sub(detail, "EpubLicense")
            xml.sub(license_el, "EpubLicenseName", "Open access")
            expression = xml.sub(license_el, "EpubLicenseExpression")
            xml.sub(expression, "EpubLicenseExpressionType", "02")
            xml.sub(expression, "EpubLicenseExpressionLink", work.license)

        title_detail = xml.sub(detail, "TitleDetail")
        xml.sub(title_detail, "TitleType", "01")
        element = xml.sub(title_detail, "TitleElement")
        xml.sub(element, "TitleElementLevel", "01")
        xml.sub(element, "TitleText", work.title)
        if work.subtitle:
            xml.sub(element, "Subtitle", work.subtitle)

        roles = spec.vocabulary_map("contributors.role")
        for sequence, contributor in enumerate(work.ordered_contributors(), start=1):
            el = xml.sub(detail, "Contributor")
            xml.sub(el, "SequenceNumber", str(sequence))
            xml.sub(el, "ContributorRole", roles.translate(contributor.role, work.work_id))
            if contributor.orcid:
                name_id = xml.sub(el, "NameIdentifier")
                xml.sub(name_id, "NameIDType", "21")
                xml.sub(name_id, "IDValue", contributor.orcid)
            if contributor.is_organization:
                xml.sub(el, "CorporateName", contributor.full_name)
                continue
            xml.sub(el, "PersonName", contributor.full_name)
            if contributor.first_name:
                xml.sub(el, "NamesBeforeKey", contributor.first_name)
            xml.sub(el, "KeyNames", contributor.key_name)

        if work.edition:
            xml.sub(detail, "EditionNumber", str(work.edition))
        languages = spec.vocabulary_map("languages")
        for code in work.languages:
            language = xml.sub(detail, "Language")
            xml.sub(language, "LanguageRole", "01")
            xml.sub(language, "LanguageCode", languages.translate(code, work.work_id))
        if work.page_count:
            extent = xml.sub(detail, "Extent")
            xml.sub(extent, "ExtentType", "00")
            xml.sub(extent, "ExtentValue", str(work.page_count))
            xml.sub(extent, "ExtentUnit", "03")

        schemes = spec.vocabulary_map("subjects.scheme")
        for subject in work.ordered_subjects():
            scheme = schemes.translate(subject.scheme, work.work_id)
            el = xml.sub(detail, "Subject")
            xml.sub(el, "SubjectSchemeIdentifier", scheme)
            if scheme == _KEYWORD_SCHEME:
                xml.sub(el, "SubjectHeadingText", subject.code)
            else:
                xml.sub(el, "SubjectCode", subject.code)

    def _publishing_detail(self, xml: XmlBuilder, product: etree._Element, work: Work) -> None:
        detail = xml.sub(product, "PublishingDetail")
        if work.imprint.name:
            imprint = xml.sub(detail, "Imprint")
            xml.sub(imprint, "ImprintName", work.imprint.name)
        publisher = xml.sub(detail, "Publisher")
        xml.sub(publisher, "PublishingRole", "01")
        xml.sub(publisher, "PublisherName", work.publisher.name)
        if work.place:
            xml.sub(detail, "CityOfPublication", work.place)
        xml.sub(detail, "PublishingStatus", "04")
        if work.publication_date:
            date_el = xml.sub(detail, "PublishingDate")
            xml.sub(date_el, "PublishingDateRole", "01")
            xml.sub(date_el, "Date", work.publication_date.strftime("%Y%m%d"), dateformat="00")

    def _product_supply(
        self, xml: XmlBuilder, product: etree._Element, work: Work, spec: FormatSpecification
    ) -> None:
        supply = xml.sub(product, "ProductSupply")
        market = xml.sub(supply, "Market")
        territory = xml.sub(market, "Territory")
        xml.sub(territory, "RegionsIncluded", "WORLD")

        detail = xml.sub(supply, "SupplyDetail")
        supplier = xml.sub(detail, "Supplier")
        xml.sub(supplier, "SupplierRole", "09")
        xml.sub(supplier, "SupplierName", work.publisher.name)
        if work.landing_page:
            website = xml.sub(supplier, "Website")
            xml.sub(website, "WebsiteRole", "01")
            xml.sub(website, "WebsiteLink", work.landing_page)
        xml.sub(detail, "ProductAvailability", "20")

        if not work.prices or not spec.option("include_prices", True):
            xml.sub(detail, "UnpricedItemType", "01")
            return
        currencies = spec.vocabulary_map("prices.currency")
        for price in sorted(work.prices, key=lambda p: (p.currency, p.territory)):
            el = xml.sub(detail, "Price")
            xml.sub(el, "PriceType", "02")
            xml.sub(el, "PriceAmount", f"{price.amount:.2f}")
            xml.sub(el, "CurrencyCode", currencies.translate(price.currency, work.work_id))
            price_territory = xml.sub(el, "Territory")
            if price.territory == "WORLD":
                xml.sub(price_territory, "RegionsIncluded", "WORLD")
            else:
                xml.sub(price_territory, "CountriesIncluded", price.territory)

    def assemble(
        self,
        fragments: Sequence[bytes],
        spec: FormatSpecification,
        *,
        timestamp: datetime | None = None,
    ) -> bytes:
        sent = as_utc(require_timestamp(spec, timestamp))
        xml = XmlBuilder(spec)
        header = xml.element("Header")
        sender = xml.sub(header, "Sender")
        xml.sub(sender, "SenderName", spec.option("sender_name", "Colophon"))
        xml.sub(header, "SentDateTime", sent.strftime("%Y%m%dT%H%M%SZ"))
        return xml_envelope(
            "ONIXMessage",
            [("xmlns", ONIX_NAMESPACE), ("release", "3.0")],
            fragments,
            head=[serialize_fragment(header)],
        )


class Onix21Encoder:
    """Encodes works as ONIX 2.1 reference-tag Product records.

    2.1 has no composite blocks: descriptive, publishing and supply fields
    sit directly on <Product>, and digital forms are qualified by an
    <EpubType> from the "epub_types" option instead of ProductFormDetail.
    """

    def encode(self, work: Work, spec: FormatSpecification) -> bytes:
        xml = XmlBuilder(spec, work.work_id)
        product = _product_head(xml, work, spec)
        if work.product_form:
            forms = spec.vocabulary_map("product_form")
            xml.sub(product, "ProductForm", forms.translate(work.product_form, work.work_id))
            epub_type = spec.option("epub_types", {}).get(work.product_form)
            if epub_type:
                xml.sub(product, "EpubType", epub_type)

        title = xml.sub(product, "Title")
        xml.sub(title, "TitleType", "01")
        xml.sub(title, "TitleText", work.title)
        if work.subtitle:
            xml.sub(title, "Subtitle", work.subtitle)
        self._contributors(xml, product, work, spec)

        if work.edition:
            xml.sub(product, "EditionNumber", str(work.edition))
        languages = spec.vocabulary_map("languages")
        for code in work.languages:
            language = xml.sub(product, "Language")
            xml.sub(language, "LanguageRole", "01")
            xml.sub(language, "LanguageCode", languages.translate(code, work.work_id))
        if work.page_count:
            xml.sub(product, "NumberOfPages", str(work.page_count))

        schemes = spec.vocabulary_map("subjects.scheme")
        for subject in work.ordered_subjects():
            scheme = schemes.translate(subject.scheme, work.work_id)
            el = xml.sub(product, "Subject")
            xml.sub(el, "SubjectSchemeIdentifier", scheme)
            if scheme == _KEYWORD_SCHEME:
                xml.sub(el, "SubjectHeadingText", subject.code)
            else:
                xml.sub(el, "SubjectCode", subject.code)

        if work.abstract:
            other_text = xml.sub(product, "OtherText")
            xml.sub(other_text, "TextTypeCode", "01")
            xml.sub(other_text, "Text", work.abstract)

        if work.imprint.name:
            imprint = xml.sub(product, "Imprint")
            xml.sub(imprint, "ImprintName", work.imprint.name)
        publisher = xml.sub(product, "Publisher")
        xml.sub(publisher, "PublishingRole", "01")
        xml.sub(publisher, "PublisherName", work.publisher.name)
        if work.place:
            xml.sub(product, "CityOfPublication", work.place)
        xml.sub(product, "PublishingStatus", "04")
        if work.publication_date:
            xml.sub(product, "PublicationDate", work.publication_date.strftime("%Y%m%d"))
        self._supply_detail(xml, product, work, spec)
        return serialize_fragment(product)

    def _contributors(
        self, xml: XmlBuilder, product: etree._Element, work: Work, spec: FormatSpecification
    ) -> None:
        roles = spec.vocabulary_map("contributors.role")
        for sequence, contributor in enumerate(work.ordered_contributors(), start=1):
            el = xml.sub(product, "Contributor")
            xml.sub(el, "SequenceNumber", str(sequence))
            xml.sub(el, "ContributorRole", roles.translate(contributor.role, work.work_id))
            if contributor.is_organization:
                xml.sub(el, "CorporateName", contributor.full_name)
            else:
                xml.sub(el, "PersonName", contributor.full_name)
                xml.sub(el, "PersonNameInverted", contributor.inverted_name)
                if contributor.first_name:
                    xml.sub(el, "NamesBeforeKey", contributor.first_name)
                xml.sub(el, "KeyNames", contributor.key_name)
            if contributor.orcid:
                name_id = xml.sub(el, "PersonNameIdentifier")
                xml.sub(name_id, "PersonNameIDType", "21")
                xml.sub(name_id, "IDValue", contributor.orcid)

    def _supply_detail(
        self, xml: XmlBuilder, product: etree._Element, work: Work, spec: FormatSpecification
    ) -> None:
        detail = xml.sub(product, "SupplyDetail")
        xml.sub(detail, "SupplierName", work.publisher.name)
        if work.landing_page:
            website = xml.sub(detail, "Website")
            xml.sub(website, "WebsiteRole", "01")
            xml.sub(website, "WebsiteLink", work.landing_page)
        xml.sub(detail, "SupplierRole", "01")
        xml.sub(detail, "SupplyToTerritory", "WORLD")
        xml.sub(detail, "ProductAvailability", "20")

        if not work.prices or not spec.option("include_prices", True):
            xml.sub(detail, "UnpricedItemType", "01")
            return
        currencies = spec.vocabulary_map("prices.currency")
        for price in sorted(work.prices, key=lambda p: (p.currency, p.territory)):
            el = xml.sub(detail, "Price")
            xml.sub(el, "PriceTypeCode", "02")
            xml.sub(el, "PriceAmount", f"{price.amount:.2f}")
            xml.sub(el, "CurrencyCode", currencies.translate(price.currency, work.work_id))
            if price.territory == "WORLD":
                xml.sub(el, "Territory", "WORLD")
            else:
                xml.sub(el, "CountryCode", price.territory)

    def assemble(
        self,
        fragments: Sequence[bytes],
        spec: FormatSpecification,
        *,
        timestamp: datetime | None = None,
    ) -> bytes:
        sent = as_utc(require_timestamp(spec, timestamp))
        xml = XmlBuilder(spec)
        header = xml.element("Header")
        xml.sub(header, "FromCompany", spec.option("sender_name", "Colophon"))
        xml.sub(header, "SentDate", sent.strftime("%Y%m%d%H%M"))
        return xml_envelope(
            "ONIXMessage",
            [("xmlns", ONIX21_NAMESPACE), ("release", "2.1")],
            fragments,
            head=[serialize_fragment(header)],
        )
