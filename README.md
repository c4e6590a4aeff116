# mallcore

Core business logic for an online mall. It runs in-process, with no server or database:

- **Payment validation** (`mallcore.validation`): the `CreditCardInfo`, `ChargeReq`
  and `ChargeResp` messages. Each has `validate()`, which raises the first
  `ValidationError` it finds, and `validate_all()`, which raises a `MultiError`
  that holds every violation.
- **Authentication** (`mallcore.auth`): `AuthUsecase` and `AuthRepository`, which sign in
  with an OAuth code and read user details from a JWT. Also `new_white_list_matcher`,
  `parse_rsa_public_key_from_pem` and `init_jwt_key`.
- **Category tree** (`mallcore.category_models`, `mallcore.category`,
  `mallcore.category_service`): `Queries` is an in-memory store for a category tree
  up to four levels deep. It keeps dotted paths and an ancestor/descendant closure
  table. `CategoryRepository`, `CategoryUsecase` and `CategoryService` are built on it.

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Validating a charge

```python
from mallcore.validation import ChargeReq, CreditCardInfo, ValidationError, MultiError

card = CreditCardInfo(number="", cvv=123, expiration_year=30, expiration_month=6)
req = ChargeReq(amount=9.5, credit_card=card, order_id="order-1", user_id="user-1")

try:
    card.validate()
except ValidationError as err:
    print(err.field, err.reason)   # Number value length must be 16 runes

try:
    req.validate_all()
except MultiError as err:
    for violation in err.all_errors():
        print(violation)           # invalid ChargeReq.CreditCard: embedded message failed validation | caused by: ...
```

The rules are as follows. The card number must be exactly 16 digits. `cvv` must be in
the range 0–9999. `expiration_year` must be at least 23. `expiration_month` must be in
the range 1–12. A charge needs a positive `amount`, a card that passes validation, and
non-empty `order_id` and `user_id`. `ChargeResp` has no rules.

## Working with categories

```python
from mallcore.category_models import Queries
from mallcore.category import CategoryRepository, CategoryUsecase
from mallcore.category_service import CategoryService, StatusError, StatusCode

service = CategoryService(CategoryUsecase(CategoryRepository(Queries())))

top = service.create_category(0, "Electronics", 1)     # parent id 0: top level
phones = service.create_category(top.id, "Phones", 1)

[c.name for c in service.get_category_path(phones.id)]  # ['Electronics', 'Phones']
[c.name for c in service.get_sub_tree(top.id)]          # ['Electronics', 'Phones']
list(service.get_closure_relations(phones.id))          # ancestor/descendant/depth rows
service.update_category(phones.id, "Mobile phones")
service.delete_category(phones.id)

try:
    service.get_category(999)
except StatusError as err:
    assert err.code is StatusCode.NOT_FOUND
```

Service methods check their arguments. A zero id, an empty name, a negative sort order
or a zero depth delta raises `StatusCode.INVALID_ARGUMENT`. Business errors
(`CategoryError`) are translated into `StatusError` with `NOT_FOUND`, `ALREADY_EXISTS`,
`FAILED_PRECONDITION` or `INTERNAL`. Only categories on the fourth level are marked as
leaves, and `get_leaf_categories()` returns them.

## Authentication

```python
from mallcore.auth import new_white_list_matcher, init_jwt_key

needs_auth = new_white_list_matcher(["/api.auth.v1.AuthService/Signin"])
needs_auth("/api.auth.v1.AuthService/Signin")       # False
needs_auth("/api.auth.v1.AuthService/GetUserInfo")  # True
```

`parse_rsa_public_key_from_pem` accepts a PEM public key or a PEM certificate. If the
input is not an RSA key, it raises `ValueError`. `init_jwt_key` raises `AuthError` in
that case.

`AuthRepository` needs an OAuth client object, which you supply. The object must have
two methods:

- `get_oauth_token(code, state)`: returns an object with `access_token`.
- `parse_jwt_token(token)`: returns claims with `owner`, `type`, `name`, `id`,
  `avatar` and `email`.

If either method fails, the repository raises `AuthError`.

## What this package does not do

- It has no HTTP or RPC server, no middleware, no command-line program and no
  service registration.
- Categories are kept in memory for the life of a `Queries` object. Nothing is written
  to a database.
- It contains no OAuth client. It does not verify JWT signatures itself. It only
  loads the RSA key that a verifier would use.