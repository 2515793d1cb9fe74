from payments import expected_signature
from tests.conftest import GATEWAY_SECRET, add_product

ADDRESS = {
    "name": "Ana",
    "email": "ana@example.com",
    "contact": "9876543210",
    "street": "12 Park Road",
    "city": "Pune",
    "state": "MH",
    "pincode": "411001",
}


def place(client, headers, products, total, payment_details=None):
    body = {"address": ADDRESS, "products": products, "totalAmount": total}
    if payment_details is not None:
        body["paymentDetails"] = payment_details
    return client.post("/orders/create_order", json=body, headers=headers)


def signed_details(order_id="order_abc", payment_id="pay_xyz"):
    return {
        "razorpay_order_id": order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": expected_signature(GATEWAY_SECRET, order_id, payment_id),
    }


def test_order_snapshots_catalog_prices(client, auth_headers):
    add_product(client, name="Kibble", new_price=10)
    add_product(client, name="Treats", new_price=2.5)

    res = place(client, auth_headers, [{"productId": 1, "quantity": 2}, {"id": 2, "quantity": 4}], 30)
    assert res.status_code == 200
    order = res.json()["order"]
    assert order["orderId"] == 1
    assert order["paymentStatus"] == "Pending"
    assert order["orderStatus"] == "Pending"
    assert order["totalAmount"] == 30
    assert order["products"] == [
        {"productId": 1, "productName": "Kibble", "productPrice": 10.0, "quantity": 2},
        {"productId": 2, "productName": "Treats", "productPrice": 2.5, "quantity": 4},
    ]


def test_snapshot_survives_price_change(client, db, auth_headers):
    add_product(client, new_price=10)
    place(client, auth_headers, [{"productId": 1, "quantity": 1}], 10)
    db["product"].update_one({"id": 1}, {"$set": {"new_price": 99}})

    stored = client.get("/orders/all").json()[0]
    assert stored["products"][0]["productPrice"] == 10


def test_order_requires_login(client, db):
    add_product(client)
    res = place(client, {}, [{"productId": 1, "quantity": 1}], 10)
    assert res.status_code == 401
    assert db["order"].count_documents({}) == 0


def test_unknown_product_is_rejected(client, auth_headers):
    res = place(client, auth_headers, [{"productId": 77, "quantity": 1}], 10)
    assert res.status_code == 422
    assert res.json()["errors"] == "Unknown product id 77"


def test_total_mismatch_is_rejected(client, auth_headers):
    add_product(client, new_price=10)
    res = place(client, auth_headers, [{"productId": 1, "quantity": 3}], 10)
    assert res.status_code == 422


def test_verified_payment_completes_order(client, auth_headers):
    add_product(client, new_price=10)
    res = place(client, auth_headers, [{"productId": 1, "quantity": 1}], 10, signed_details())
    order = res.json()["order"]
    assert order["paymentStatus"] == "Completed"
    assert order["paymentDetails"]["razorpay_order_id"] == "order_abc"


def test_bad_signature_marks_payment_failed(client, auth_headers):
    add_product(client, new_price=10)
    details = signed_details()
    details["razorpay_signature"] = "0" * 64
    res = place(client, auth_headers, [{"productId": 1, "quantity": 1}], 10, details)
    assert res.json()["order"]["paymentStatus"] == "Failed"


def test_order_ids_increment(client, auth_headers):
    add_product(client, new_price=10)
    first = place(client, auth_headers, [{"productId": 1, "quantity": 1}], 10).json()["order"]
    second = place(client, auth_headers, [{"productId": 1, "quantity": 1}], 10).json()["order"]
    assert (first["orderId"], second["orderId"]) == (1, 2)


def test_list_orders_and_mine(client, auth_headers):
    add_product(client, new_price=10)
    place(client, auth_headers, [{"productId": 1, "quantity": 1}], 10)
    other = client.post("/signup", json={"username": "Bo", "email": "bo@example.com", "password": "hunter22"})
    place(client, {"auth-token": other.json()["token"]}, [{"productId": 1, "quantity": 2}], 20)

    assert [o["orderId"] for o in client.get("/orders/all").json()] == [1, 2]
    mine = client.get("/orders/mine", headers=auth_headers).json()
    assert [o["orderId"] for o in mine] == [1]


def test_update_order_status(client, auth_headers):
    add_product(client, new_price=10)
    place(client, auth_headers, [{"productId": 1, "quantity": 1}], 10)

    res = client.put("/orders/1/status", json={"status": "Shipped"})
    assert res.status_code == 200
    assert res.json()["orderStatus"] == "Shipped"
    assert client.get("/orders/all").json()[0]["orderStatus"] == "Shipped"


def test_update_status_unknown_order(client):
    res = client.put("/orders/999/status", json={"status": "Shipped"})
    assert res.status_code == 404
    assert res.json() == {"success": False, "errors": "Order not found"}


def test_update_status_rejects_unknown_status(client, auth_headers):
    add_product(client, new_price=10)
    place(client, auth_headers, [{"productId": 1, "quantity": 1}], 10)
    res = client.put("/orders/1/status", json={"status": "Lost"})
    assert res.status_code == 422


def test_verify_payment_updates_linked_order(client, auth_headers):
    add_product(client, new_price=10)
    details = signed_details(order_id="order_later")
    details["razorpay_signature"] = "bad"
    place(client, auth_headers, [{"productId": 1, "quantity": 1}], 10, details)
    assert client.get("/orders/all").json()[0]["paymentStatus"] == "Failed"

    res = client.post("/verify_payment", json=signed_details(order_id="order_later"))
    assert res.status_code == 200
    assert client.get("/orders/all").json()[0]["paymentStatus"] == "Completed"


def test_forged_callback_leaves_paid_order_alone(client, auth_headers):
    add_product(client, new_price=10)
    place(client, auth_headers, [{"productId": 1, "quantity": 1}], 10, signed_details(order_id="order_paid"))

    forged = signed_details(order_id="order_paid")
    forged["razorpay_signature"] = "junk"
    res = client.post("/verify_payment", json=forged)
    assert res.status_code == 400
    assert client.get("/orders/all").json()[0]["paymentStatus"] == "Completed"


def test_forged_callback_does_not_fail_pending_order(client, db, auth_headers):
    add_product(client, new_price=10)
    place(client, auth_headers, [{"productId": 1, "quantity": 1}], 10)
    db["order"].update_one({"orderId": 1}, {"$set": {"paymentDetails": {"razorpay_order_id": "order_open"}}})

    client.post("/verify_payment", json={
        "razorpay_order_id": "order_open", "razorpay_payment_id": "pay_1", "razorpay_signature": "junk",
    })
    assert client.get("/orders/all").json()[0]["paymentStatus"] == "Pending"


def test_payment_cannot_settle_two_orders(client, db, auth_headers):
    add_product(client, new_price=10)
    first = place(client, auth_headers, [{"productId": 1, "quantity": 1}], 10, signed_details())
    assert first.json()["order"]["paymentStatus"] == "Completed"

    again = place(client, auth_headers, [{"productId": 1, "quantity": 1}], 10, signed_details())
    assert again.status_code == 422
    assert again.json()["errors"] == "Payment pay_xyz is already used by another order"
    assert db["order"].count_documents({}) == 1


def test_update_status_with_odd_ids(client, auth_headers):
    add_product(client, new_price=10)
    place(client, auth_headers, [{"productId": 1, "quantity": 1}], 10)
    for ref in ["%C2%B2", "0", "9" * 30, "99999999999999999999", "-1"]:
        res = client.put(f"/orders/{ref}/status", json={"status": "Shipped"})
        assert res.status_code == 404, ref
        assert res.json() == {"success": False, "errors": "Order not found"}


def test_update_status_by_object_id(client, db, auth_headers):
    add_product(client, new_price=10)
    place(client, auth_headers, [{"productId": 1, "quantity": 1}], 10)
    object_id = str(db["order"].find_one({})["_id"])
    res = client.put(f"/orders/{object_id}/status", json={"status": "Delivered"})
    assert res.status_code == 200
    assert res.json()["orderStatus"] == "Delivered"
