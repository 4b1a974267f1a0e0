"""
Tests for the invoice line classifier and filter.
"""

import pytest

from invoice_reconquest.line_filter import InvoiceLineFilter
from invoice_reconquest.schemas import Category, Invoice, InvoiceLine


def _mixed_invoice():
    return {
        "invoiceNumber": "FA-2025-TEST",
        "client": {"name": "Client Test BTP"},
        "totalAmount": 15000,
        "products": [
            {"reference": "ELAST-001", "designation": "ELASTOPHENE FLAM 25 AR", "quantity": 50, "unitPrice": 45, "totalPrice": 2250, "isCompetitor": False},
            {"reference": "IKO-002", "designation": "Membrane IKO Premium", "quantity": 30, "unitPrice": 60, "totalPrice": 1800, "isCompetitor": True},
            {"reference": "", "designation": "TRANSPORT", "quantity": 1, "unitPrice": 150, "totalPrice": 150},
            {"reference": "FRAIS-001", "designation": "Frais de transport exceptionnel", "quantity": 1, "unitPrice": 250, "totalPrice": 250},
            {"reference": "", "designation": "Port et emballage", "quantity": 1, "unitPrice": 80, "totalPrice": 80},
            {"reference": "", "designation": "Eco-taxe DEEE", "quantity": 1, "unitPrice": 25, "totalPrice": 25},
            {"reference": "ECO-001", "designation": "Eco-participation recyclage", "quantity": 1, "unitPrice": 35, "totalPrice": 35},
            {"reference": "", "designation": "Main d'oeuvre pose", "quantity": 8, "unitPrice": 50, "totalPrice": 400},
            {"reference": "FORM-001", "designation": "Formation application produits", "quantity": 1, "unitPrice": 500, "totalPrice": 500},
            {"reference": "", "designation": "Remise commerciale 5%", "quantity": 1, "unitPrice": -250, "totalPrice": -250},
            {"reference": "TRANS-001", "designation": "Isolant transport de chaleur SOPRA", "quantity": 20, "unitPrice": 35, "totalPrice": 700},
            {"reference": "PAL-001", "designation": "Palette de 48 rouleaux SOPRALENE", "quantity": 1, "unitPrice": 2400, "totalPrice": 2400},
        ],
    }


class TestClassify:
    def setup_method(self):
        self.line_filter = InvoiceLineFilter()

    @pytest.mark.parametrize("line", [{"designation": ""}, {"designation": "  "}, None, {}])
    def test_empty_lines_are_not_products(self, line):
        result = self.line_filter.classify(line)
        assert result.is_product is False
        assert "vide" in result.reason

    @pytest.mark.parametrize(
        "designation, expected",
        [
            ("TRANSPORT", False),
            ("Transport de chaleur isolant", True),
            ("Frais de dossier", False),
            ("Frais bitume modifié SBS", True),
            ("ECO-TAXE", False),
            ("ECO membrane étanche", True),
            ("Palette vide", False),
            ("Palette de rouleaux ELASTOPHENE", True),
            ("TVA 20%", False),
            ("Forfait pose étanchéité", False),
            ("A", False),
        ],
    )
    def test_ambiguous_designations(self, designation, expected):
        assert self.line_filter.classify({"designation": designation}).is_product is expected

    @pytest.mark.parametrize(
        "designation, category",
        [
            ("Frais de port", Category.TRANSPORT),
            ("Livraison chantier", Category.TRANSPORT),
            ("Éco-participation", Category.TAXES),
            ("DEEE", Category.TAXES),
            ("Main d’œuvre", Category.SERVICES),
            ("Assistance pose membrane", Category.SERVICES),
            ("Installation toiture", Category.SERVICES),
            ("Rabais exceptionnel", Category.DISCOUNTS),
            ("Avoir sur facture 123", Category.DISCOUNTS),
            ("Frais de dossier", Category.FEES),
            ("Consigne palettes", Category.FEES),
            ("Dépose ancienne étanchéité", Category.SERVICES),
            ("Repose des relevés", Category.SERVICES),
            ("Avoirs divers", Category.DISCOUNTS),
            ("Contribution TGAP", Category.TAXES),
        ],
    )
    def test_non_product_categories(self, designation, category):
        result = self.line_filter.classify({"designation": designation})
        assert result.is_product is False
        assert result.category == category

    def test_exception_wins_over_transport_keyword(self):
        result = self.line_filter.classify({"designation": "Transport de chaleur isolant", "totalPrice": 1200})
        assert result.is_product is True
        assert result.category == Category.PRODUCT_EXCEPTION

    def test_host_brand_token_is_a_product_exception(self):
        result = self.line_filter.classify({"designation": "Livraison SOPRALENE FLAM 180"})
        assert result.is_product is True
        assert result.category == Category.PRODUCT_EXCEPTION

    def test_plain_product(self):
        result = self.line_filter.classify(InvoiceLine(designation="Membrane IKO Premium", total_price=1800))
        assert result.is_product is True
        assert result.category is None

    def test_reference_is_checked_too(self):
        result = self.line_filter.classify({"designation": "Article divers", "reference": "TRANSPORT-01"})
        assert result.category == Category.TRANSPORT

    def test_negative_amount_without_quantity_is_a_discount(self):
        result = self.line_filter.classify({"designation": "Ajustement", "quantity": 0, "totalPrice": -50})
        assert result.is_product is False
        assert result.category == Category.DISCOUNTS

    def test_negative_amount_with_quantity_stays_a_product(self):
        result = self.line_filter.classify({"designation": "Membrane bitumineuse", "quantity": 2, "unitPrice": 10, "totalPrice": -20})
        assert result.is_product is True

    @pytest.mark.parametrize(
        "line",
        [None, 42, "TRANSPORT", [], {}, {"designation": None}, {"designation": 12345}, {"designation": "x", "totalPrice": "abc"}],
    )
    def test_classification_is_total(self, line):
        result = self.line_filter.classify(line)
        assert isinstance(result.is_product, bool)
        if result.category == Category.PRODUCT_EXCEPTION:
            assert result.is_product
        elif result.category is not None:
            assert not result.is_product


class TestFilterLines:
    def setup_method(self):
        self.line_filter = InvoiceLineFilter()

    def test_transport_and_exception(self):
        result = self.line_filter.filter_lines(
            [
                {"designation": "TRANSPORT", "totalPrice": 150},
                {"designation": "Transport de chaleur isolant", "totalPrice": 1200},
            ]
        )
        assert [line.designation for line in result.non_product_lines] == ["TRANSPORT"]
        assert [line.designation for line in result.product_lines] == ["Transport de chaleur isolant"]
        assert result.summary.total_product_amount == 1200
        assert result.summary.categories == {"transport": 1}

    def test_summary_of_mixed_invoice(self):
        result = self.line_filter.filter_lines(_mixed_invoice()["products"])
        summary = result.summary
        assert summary.total_lines == 12
        assert summary.product_count == 4
        assert summary.non_product_count == 8
        assert summary.categories == {"transport": 3, "taxes": 2, "services": 2, "discounts": 1}
        assert summary.total_product_amount == pytest.approx(7150)
        # discounts keep their sign
        assert summary.total_non_product_amount == pytest.approx(1190)

    def test_removed_lines_carry_classification(self):
        result = self.line_filter.filter_lines([{"designation": "TVA 20%", "totalPrice": 200}])
        removed = result.non_product_lines[0]
        assert removed.filter_info.category == Category.TAXES
        assert removed.total_price == 200

    def test_unreadable_metadata_keeps_the_line(self):
        result = self.line_filter.filter_lines(
            [{"designation": "Membrane IKO", "totalPrice": 1800, "filterInfo": {"category": "product"}}]
        )
        assert result.summary.product_count == 1
        assert result.summary.total_product_amount == 1800
        assert result.product_lines[0].filter_info is None

    def test_non_list_input(self):
        result = self.line_filter.filter_lines(None)
        assert result.product_lines == []
        assert result.summary.total_lines == 0


class TestCleanInvoice:
    def setup_method(self):
        self.line_filter = InvoiceLineFilter()

    def test_clean_mixed_invoice(self):
        cleaned = self.line_filter.clean_invoice(_mixed_invoice())
        assert len(cleaned.products) == 4
        assert cleaned.total_products_only == pytest.approx(7150)
        assert cleaned.total_amount == 15000
        assert cleaned.filtering.original_product_count == 12
        assert cleaned.filtering.filtered_product_count == 4
        assert len(cleaned.filtering.removed_lines) == 8

    def test_total_is_recomputed_from_products(self):
        cleaned = self.line_filter.clean_invoice(_mixed_invoice())
        assert cleaned.total_products_only == pytest.approx(sum(p.total_price for p in cleaned.products), abs=1e-6)

    def test_cleaning_twice_is_a_no_op(self):
        once = self.line_filter.clean_invoice(_mixed_invoice())
        twice = self.line_filter.clean_invoice(once)
        assert [p.designation for p in twice.products] == [p.designation for p in once.products]
        assert twice.total_products_only == once.total_products_only
        assert twice.filtering.removed_lines == []

    def test_source_invoice_is_not_mutated(self):
        invoice = Invoice.model_validate(_mixed_invoice())
        self.line_filter.clean_invoice(invoice)
        assert len(invoice.products) == 12
        assert invoice.filtering is None

    @pytest.mark.parametrize("products", [None, [], "not a list"])
    def test_missing_products(self, products):
        cleaned = self.line_filter.clean_invoice({"clientName": "X", "products": products})
        assert cleaned.products == []
        assert cleaned.total_products_only == 0

    def test_all_lines_removed(self):
        cleaned = self.line_filter.clean_invoice({"products": [{"designation": "TRANSPORT", "totalPrice": 90}]})
        assert cleaned.products == []
        assert cleaned.total_products_only == 0
        assert cleaned.filtering.summary.categories == {"transport": 1}
