"""
End-to-end API tests: storefront browsing, cart, checkout and the admin panel.
"""
import asyncio
from urllib.parse import unquote

import httpx
from conftest import ACCESS_PASSWORD, ADMIN_EMAIL, ADMIN_PASSWORD, USER_EMAIL, USER_PASSWORD

API = "/api/v1"


def _sign_in_admin(client) -> None:
    assert client.post(f"{API}/admin/access", json={"password": ACCESS_PASSWORD}).status_code == 200
    response = client.post(
        f"{API}/admin/sign-in", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )
    assert response.json()["state"] == "authorized"


# ============= Storefront =============


class TestStorefront:
    def test_health(self, client):
        assert client.get("/").json() == {"status": "ok", "service": "storefront-backend"}

    def test_list_hides_out_of_stock(self, client):
        response = client.get(f"{API}/products")

        assert response.status_code == 200
        assert [p["id"] for p in response.json()] == ["p2", "p1"]

    def test_filter_by_category_and_search(self, client):
        assert [p["id"] for p in client.get(f"{API}/products?category=Makeup").json()] == ["p2"]
        assert [p["id"] for p in client.get(f"{API}/products?q=ROSE").json()] == ["p1"]
        assert client.get(f"{API}/products?category=Perfumes&q=gloss").json() == []

    def test_categories(self, client):
        categories = client.get(f"{API}/products/categories").json()

        assert categories[0] == "ALL"
        assert "Perfumes" in categories


# ============= Cart & checkout =============


class TestCartAndCheckout:
    def test_cart_flow(self, client):
        client.post(f"{API}/cart", json={"product_id": "p1"})
        client.post(f"{API}/cart", json={"product_id": "p1"})
        summary = client.post(f"{API}/cart", json={"product_id": "p2"}).json()

        assert summary["total_price"] == 25
        assert summary["total_quantity"] == 3

        summary = client.delete(f"{API}/cart/p1").json()
        assert summary["total_price"] == 5
        assert summary["total_quantity"] == 1

    def test_cart_is_per_browser(self, client):
        from fastapi.testclient import TestClient

        client.post(f"{API}/cart", json={"product_id": "p1"})
        other = TestClient(client.app)

        assert other.get(f"{API}/cart").json()["items"] == []
        assert len(client.get(f"{API}/cart").json()["items"]) == 1

    def test_unknown_product(self, client):
        response = client.post(f"{API}/cart", json={"product_id": "p3"})

        assert response.status_code == 404
        assert response.json() == {"detail": "Product not found"}

    def test_remove_missing_is_noop(self, client):
        response = client.delete(f"{API}/cart/nope")

        assert response.status_code == 200
        assert response.json()["items"] == []

    def test_empty_cart_checkout(self, client):
        assert client.post(f"{API}/checkout").status_code == 204

    def test_checkout_link_keeps_cart(self, client, settings):
        client.post(f"{API}/cart", json={"product_id": "p1"})

        link = client.post(f"{API}/checkout").json()

        prefix = f"https://wa.me/{settings.DEFAULT_WHATSAPP_NUMBER}?text="
        assert link["url"].startswith(prefix)
        assert "• Rose Perfume" in unquote(link["url"][len(prefix):])
        assert link["total"] == 10
        assert client.get(f"{API}/cart").json()["total_quantity"] == 1

    def test_cart_price_is_frozen(self, client, product_repo, catalog):
        client.post(f"{API}/cart", json={"product_id": "p1"})
        product_repo.rows["p1"] = product_repo.rows["p1"].model_copy(update={"price": 99.0})
        catalog.invalidate_all()

        summary = client.post(f"{API}/cart", json={"product_id": "p1"}).json()

        assert summary["items"][0]["price"] == 10
        assert summary["total_price"] == 20


# ============= Admin gate =============


class TestAdminGate:
    def test_starts_locked(self, client):
        assert client.get(f"{API}/admin/session").json()["state"] == "locked"

    def test_wrong_access_password(self, client):
        response = client.post(f"{API}/admin/access", json={"password": "nope"})

        assert response.status_code == 401
        assert response.json() == {"detail": "Incorrect password"}

    def test_sign_in_before_unlock(self, client):
        response = client.post(
            f"{API}/admin/sign-in", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        )

        assert response.status_code == 423

    def test_products_need_sign_in(self, client):
        client.post(f"{API}/admin/access", json={"password": ACCESS_PASSWORD})

        assert client.get(f"{API}/admin/products").status_code == 401

    def test_non_admin_is_forbidden(self, client):
        client.post(f"{API}/admin/access", json={"password": ACCESS_PASSWORD})
        session = client.post(
            f"{API}/admin/sign-in", json={"email": USER_EMAIL, "password": USER_PASSWORD}
        ).json()

        assert session["state"] == "unauthorized"
        assert client.get(f"{API}/admin/products").status_code == 403

    def test_bad_credentials(self, client):
        client.post(f"{API}/admin/access", json={"password": ACCESS_PASSWORD})

        response = client.post(f"{API}/admin/sign-in", json={"email": ADMIN_EMAIL, "password": "x"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Incorrect email or password"

    def test_sign_out(self, client):
        _sign_in_admin(client)

        session = client.post(f"{API}/admin/sign-out").json()

        assert session["state"] == "unauthenticated"
        assert session["message"] == "Signed out successfully"


# ============= Admin products =============


class TestAdminProducts:
    def test_create_product(self, client):
        _sign_in_admin(client)
        assert client.post(f"{API}/admin/editor/create").json()["mode"] == "awaiting_image"

        editor = client.post(
            f"{API}/admin/editor/image",
            files={"file": ("musk.png", b"\x89PNG fake", "image/png")},
        ).json()
        assert editor["mode"] == "filling_form"
        assert editor["draft"]["image_url"].startswith("https://cdn.test/mira-img/")

        client.patch(
            f"{API}/admin/editor/draft",
            json={"name": "White Musk", "price": "12.50", "category": "Perfumes"},
        )
        result = client.post(f"{API}/admin/editor/submit").json()

        assert result["message"] == "Product added successfully"
        names = [p["name"] for p in client.get(f"{API}/products").json()]
        assert names[0] == "White Musk"

    def test_draft_before_upload_is_conflict(self, client):
        _sign_in_admin(client)
        client.post(f"{API}/admin/editor/create")

        response = client.patch(f"{API}/admin/editor/draft", json={"name": "Musk"})

        assert response.status_code == 409

    def test_non_image_upload(self, client):
        _sign_in_admin(client)
        client.post(f"{API}/admin/editor/create")

        response = client.post(
            f"{API}/admin/editor/image",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Please choose a valid image file"

    def test_validation_error_names_field(self, client):
        _sign_in_admin(client)
        client.post(f"{API}/admin/editor/edit/p1")
        client.patch(f"{API}/admin/editor/draft", json={"price": "abc"})

        response = client.post(f"{API}/admin/editor/submit")

        assert response.status_code == 422
        assert response.json() == {"detail": "Price is not a valid number", "field": "price"}
        assert client.get(f"{API}/admin/editor").json()["mode"] == "editing"

    def test_edit_product(self, client):
        _sign_in_admin(client)
        draft = client.post(f"{API}/admin/editor/edit/p1").json()["draft"]
        assert draft["price"] == "10"

        client.patch(f"{API}/admin/editor/draft", json={"in_stock": False})
        assert client.post(f"{API}/admin/editor/submit").status_code == 200

        assert [p["id"] for p in client.get(f"{API}/products").json()] == ["p2"]
        admin_ids = [p["id"] for p in client.get(f"{API}/admin/products").json()]
        assert "p1" in admin_ids

    def test_delete_product(self, client):
        _sign_in_admin(client)

        assert client.post(f"{API}/admin/products/p2/delete/confirm").status_code == 409

        client.post(f"{API}/admin/products/p2/delete")
        response = client.post(f"{API}/admin/products/p2/delete/confirm")

        assert response.json() == {"message": "Product deleted successfully"}
        assert [p["id"] for p in client.get(f"{API}/products").json()] == ["p1"]

    def test_unknown_draft_field_is_rejected(self, client):
        _sign_in_admin(client)
        client.post(f"{API}/admin/editor/edit/p1")

        assert client.patch(f"{API}/admin/editor/draft", json={"colour": "red"}).status_code == 422

    def test_dismiss_must_match_pending_request(self, client):
        _sign_in_admin(client)
        client.post(f"{API}/admin/products/p2/delete")

        assert client.post(f"{API}/admin/products/p1/delete/dismiss").status_code == 409

        editor = client.post(f"{API}/admin/products/p2/delete/dismiss").json()
        assert editor["pending_delete_id"] is None


# ============= Admin settings =============


class TestAdminSettings:
    def test_whatsapp_number_drives_checkout(self, client):
        _sign_in_admin(client)

        saved = client.put(f"{API}/admin/settings/whatsapp", json={"number": "15550001111"})
        assert saved.status_code == 200
        assert client.get(f"{API}/admin/settings/whatsapp").json() == {"number": "15550001111"}

        client.post(f"{API}/cart", json={"product_id": "p2"})
        link = client.post(f"{API}/checkout").json()
        assert link["url"].startswith("https://wa.me/15550001111?text=")

    def test_settings_need_admin(self, client):
        assert client.get(f"{API}/admin/settings/whatsapp").status_code == 423


# ============= Concurrency =============


class TestConcurrentRequests:
    def test_burst_from_one_browser_completes(self, client):
        """Queued requests of one browser must not starve the worker threads."""

        async def scenario():
            transport = httpx.ASGITransport(app=client.app)
            async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as busy, \
                    httpx.AsyncClient(transport=transport, base_url="http://testserver") as other:
                await busy.get(f"{API}/cart")  # session cookie
                burst = asyncio.gather(
                    *(busy.post(f"{API}/cart", json={"product_id": "p1"}) for _ in range(60))
                )
                other_response = await asyncio.wait_for(other.get(f"{API}/cart"), timeout=5)
                responses = await asyncio.wait_for(burst, timeout=20)
                summary = (await busy.get(f"{API}/cart")).json()
            return other_response, responses, summary

        other_response, responses, summary = asyncio.run(scenario())

        assert other_response.status_code == 200
        assert all(r.status_code == 200 for r in responses)
        assert summary["total_quantity"] == 60
