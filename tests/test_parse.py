import pytest

from hostgrid.parse import (
    AdminAction,
    AdminSubcommand,
    BadHostname,
    BrowsePage,
    ExpectedLiteral,
    GetGrid,
    HEIGHT,
    IllegalToken,
    Index,
    InvalidLength,
    LoginAttempt,
    LoginPage,
    Logout,
    NoSubdomain,
    ParseError,
    RegisterAttempt,
    RegisterPage,
    SetCell,
    UnknownQueryKind,
    Unparseable,
    WIDTH,
    extract_label,
    normalize_host,
    parse_query,
    strip_port,
)

SECRET = "hunter2"


@pytest.mark.parametrize(
    "label, expected",
    [
        ("index", Index()),
        ("browse", BrowsePage()),
        ("login", LoginPage()),
        ("register", RegisterPage()),
        ("login-username-alice-password-secret1", LoginAttempt("alice", "secret1")),
        ("register-username-alice-password-secret1", RegisterAttempt("alice", "secret1")),
        ("logout-username-alice-password-secret1", Logout("alice", "secret1")),
        ("get-username-alice", GetGrid("alice")),
        ("check-2-3-username-alice-password-pw", SetCell(2, 3, True, "alice", "pw")),
        ("uncheck-0-4-username-alice-password-pw", SetCell(0, 4, False, "alice", "pw")),
        (
            "set-checkbox-x-4-y-0-to-checked-username-bob-password-pw",
            SetCell(4, 0, True, "bob", "pw"),
        ),
        (
            "set-checkbox-x-1-y-1-to-unchecked-username-bob-password-pw",
            SetCell(1, 1, False, "bob", "pw"),
        ),
    ],
)
def test_parse_valid_queries(label, expected):
    assert parse_query(label) == expected


def test_placeholder_values_are_taken_verbatim():
    command = parse_query("login-username-Alice_99-password-p@ss.word")
    assert command == LoginAttempt(username="Alice_99", password="p@ss.word")


@pytest.mark.parametrize("label", ["", "foo", "LOGIN", "assets-css", "checkbox-1-1", "_"])
def test_unknown_discriminator(label):
    with pytest.raises(UnknownQueryKind) as info:
        parse_query(label)
    assert info.value.query == label.split("-")[0]


@pytest.mark.parametrize("x, y", [(WIDTH, 0), (0, HEIGHT), (9, 9), (255, 1), (1, 1000)])
def test_out_of_range_coordinates_are_unparseable(x, y):
    with pytest.raises(Unparseable) as info:
        parse_query(f"check-{x}-{y}-username-alice-password-pw")
    assert info.value.position == (1 if x >= WIDTH else 2)
    assert info.value.kind == "check"


def test_uncheck_nine_nine_fails_at_x():
    with pytest.raises(Unparseable) as info:
        parse_query("uncheck-9-9-username-alice-password-secret1")
    assert info.value.position == 1


@pytest.mark.parametrize("token", ["a", "+1", "1_0", " 1", "٣", "0x1", "9" * 5000])
def test_non_numeric_coordinates_are_unparseable(token):
    with pytest.raises(Unparseable) as info:
        parse_query(f"check-1-{token}-username-alice-password-pw")
    assert info.value.position == 2


def test_set_grammar_coordinate_positions():
    with pytest.raises(Unparseable) as info:
        parse_query("set-checkbox-x-1-y-7-to-checked-username-bob-password-pw")
    assert info.value.position == 5
    assert info.value.kind == "set"


def test_set_grammar_rejects_unknown_checked_token():
    with pytest.raises(IllegalToken) as info:
        parse_query("set-checkbox-x-1-y-1-to-maybe-username-bob-password-pw")
    assert info.value.position == 7
    assert info.value.kind == "set"


@pytest.mark.parametrize(
    "label, expected, actual, kind",
    [
        ("login-username-alice", 5, 3, "login"),
        ("login-username-alice-password-a-b", 5, 6, "login"),
        ("register-username", 5, 2, "register"),
        ("get", 3, 1, "get"),
        ("logout", 5, 1, "logout"),
        ("check-1-1", 7, 3, "check"),
        ("index-now", 1, 2, "index"),
    ],
)
def test_invalid_length(label, expected, actual, kind):
    with pytest.raises(InvalidLength) as info:
        parse_query(label)
    assert (info.value.expected, info.value.actual, info.value.kind) == (expected, actual, kind)


def test_long_form_is_never_truncated_to_page():
    # "login" alone is the login page, but a malformed long query is an error
    with pytest.raises(InvalidLength):
        parse_query("login-username-alice")


@pytest.mark.parametrize(
    "label, expected, position",
    [
        ("login-user-alice-password-pw", "username", 1),
        ("login-username-alice-pass-pw", "password", 3),
        ("get-name-alice", "username", 1),
        ("check-1-1-user-alice-password-pw", "username", 3),
        ("set-box-x-1-y-1-to-checked-username-bob-password-pw", "checkbox", 1),
    ],
)
def test_expected_literal(label, expected, position):
    with pytest.raises(ExpectedLiteral) as info:
        parse_query(label)
    assert info.value.expected == expected
    assert info.value.position == position


@pytest.mark.parametrize(
    "label, position",
    [
        ("login-username--password-pw", 2),
        ("login-username-alice-password-", 4),
        ("get-username-", 2),
        ("check-1-1-username--password-pw", 4),
    ],
)
def test_empty_credentials_are_unparseable(label, position):
    with pytest.raises(Unparseable) as info:
        parse_query(label)
    assert info.value.position == position


def test_register_allows_empty_username():
    assert parse_query("register-username--password-pw") == RegisterAttempt("", "pw")


def test_register_requires_password():
    with pytest.raises(Unparseable):
        parse_query("register-username-alice-password-")


@pytest.mark.parametrize(
    "label, expected",
    [
        (f"admin-{SECRET}", AdminAction(AdminSubcommand.PANEL)),
        (f"admin-{SECRET}-verify-bob", AdminAction(AdminSubcommand.VERIFY, "bob")),
        (f"admin-{SECRET}-unverify-bob", AdminAction(AdminSubcommand.UNVERIFY, "bob")),
        (f"admin-{SECRET}-delete-bob", AdminAction(AdminSubcommand.DELETE, "bob")),
        (f"admin-{SECRET}-username-dump", AdminAction(AdminSubcommand.DUMP)),
    ],
)
def test_admin_queries(label, expected):
    assert parse_query(label, admin_secret=SECRET) == expected


@pytest.mark.parametrize(
    "label, secret",
    [
        (f"admin-{SECRET}-verify-bob", None),
        ("admin-wrong-verify-bob", SECRET),
        ("admin-hunter-verify-bob", SECRET),
        ("admin", SECRET),
        ("admin-", SECRET),
    ],
)
def test_admin_secret_mismatch_looks_unknown(label, secret):
    with pytest.raises(UnknownQueryKind) as info:
        parse_query(label, admin_secret=secret)
    assert info.value.query == "admin"


def test_admin_errors_after_secret_matched():
    with pytest.raises(ExpectedLiteral) as info:
        parse_query(f"admin-{SECRET}-username-bob", admin_secret=SECRET)
    assert (info.value.expected, info.value.position) == ("dump", 3)

    with pytest.raises(ExpectedLiteral) as info:
        parse_query(f"admin-{SECRET}-promote-bob", admin_secret=SECRET)
    assert info.value.position == 2

    with pytest.raises(InvalidLength):
        parse_query(f"admin-{SECRET}-verify", admin_secret=SECRET)

    with pytest.raises(Unparseable):
        parse_query(f"admin-{SECRET}-verify-", admin_secret=SECRET)


@pytest.mark.parametrize(
    "label",
    ["", "-", "---", "login--", "check-----", "ünïcødé", "check-٣-1-username-a-password-b",
     "\x00", "get-username-\U0001f600", "admin-" * 40, "set" + "-" * 11],
)
def test_parse_is_total(label):
    try:
        parse_query(label, admin_secret=SECRET)
    except ParseError:
        pass


def test_set_cell_bit_index():
    assert SetCell(2, 2, True, "alice", "pw").bit == 12
    assert SetCell(4, 4, True, "alice", "pw").bit == WIDTH * HEIGHT - 1


@pytest.mark.parametrize(
    "hostname, label",
    [
        ("login.example.com", "login"),
        ("get-username-alice.example.com", "get-username-alice"),
        ("www.a.b.index.example.com", "index"),
    ],
)
def test_extract_label(hostname, label):
    assert extract_label(hostname, "example.com") == label


@pytest.mark.parametrize("hostname", ["example.org", "login.example.org", "loginexample.com", ""])
def test_extract_label_bad_hostname(hostname):
    with pytest.raises(BadHostname) as info:
        extract_label(hostname, "example.com")
    assert not isinstance(info.value, NoSubdomain)


@pytest.mark.parametrize("hostname", ["example.com", ".example.com", "a..example.com"])
def test_extract_label_no_subdomain(hostname):
    with pytest.raises(NoSubdomain):
        extract_label(hostname, "example.com")


def test_no_subdomain_is_a_bad_hostname():
    with pytest.raises(BadHostname):
        extract_label("example.com", "example.com")


def test_strip_port():
    assert strip_port("login.example.com:1472") == "login.example.com"
    assert strip_port("login.example.com") == "login.example.com"
    assert strip_port("login.example.com:abc") == "login.example.com:abc"


@pytest.mark.parametrize(
    "host, hostname",
    [
        ("Login.Example.COM", "login.example.com"),
        ("login.example.com.", "login.example.com"),
        ("login.example.com.:1472", "login.example.com"),
        ("example.com..", "example.com."),
    ],
)
def test_normalize_host(host, hostname):
    assert normalize_host(host) == hostname


def test_admin_secret_with_uppercase_matches_lowercased_label():
    command = parse_query("admin-hunter2", admin_secret="Hunter2")
    assert command == AdminAction(AdminSubcommand.PANEL)
