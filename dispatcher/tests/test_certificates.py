import pytest

from dispatcher.app.certificates import (
    CertificateDirectoryReader,
    CertificateStore,
    load_certificate,
    load_certificate_file,
)
from dispatcher.app.errors import CertificateError

from dispatcher.tests.fixtures.certificates import (
    certificate_der,
    certificate_pem,
    make_self_signed_certificate,
)


@pytest.fixture(scope="module")
def certificate():
    return make_self_signed_certificate()[0]


def test_loads_pem(certificate):
    assert load_certificate(certificate_pem(certificate)) == certificate


def test_loads_der(certificate):
    assert load_certificate(certificate_der(certificate)) == certificate


def test_rejects_garbage():
    with pytest.raises(CertificateError):
        load_certificate(b"definitely not a certificate")


def test_file_errors_name_the_path(tmp_path):
    path = tmp_path / "broken.pem"
    path.write_bytes(b"-----BEGIN CERTIFICATE-----\nbroken\n")

    with pytest.raises(CertificateError) as info:
        load_certificate_file(path)

    assert info.value.details == {"path": str(path)}


def test_missing_file_is_a_certificate_error(tmp_path):
    with pytest.raises(CertificateError):
        load_certificate_file(tmp_path / "absent.pem")


# ---------------------------------------------------------------------------
# Directory reader and store
# ---------------------------------------------------------------------------

def test_reader_finds_certificate_by_id(tmp_path, certificate):
    (tmp_path / "issuer-a.der").write_bytes(certificate_der(certificate))

    reader = CertificateDirectoryReader(tmp_path)

    assert reader.try_read("issuer-a") == certificate
    assert reader.try_read("issuer-b") is None


@pytest.mark.parametrize("certificate_id", ["", "../issuer-a", "sub/issuer-a"])
def test_reader_ignores_path_like_ids(tmp_path, certificate, certificate_id):
    (tmp_path / "issuer-a.pem").write_bytes(certificate_pem(certificate))

    assert CertificateDirectoryReader(tmp_path).try_read(certificate_id) is None


def test_reader_treats_unreadable_certificate_as_miss(tmp_path):
    (tmp_path / "issuer-a.pem").write_bytes(b"garbage")

    assert CertificateDirectoryReader(tmp_path).try_read("issuer-a") is None


def test_store_memoizes_first_successful_read(tmp_path, certificate):
    path = tmp_path / "issuer-a.pem"
    path.write_bytes(certificate_pem(certificate))
    store = CertificateStore(tmp_path)

    first = store.get("issuer-a")
    path.unlink()
    second = store.get("issuer-a")

    assert first == certificate
    assert second is first


def test_store_require_raises_on_unknown_id(tmp_path):
    with pytest.raises(CertificateError) as info:
        CertificateStore(tmp_path).require("issuer-a")

    assert info.value.details == {"certificate_id": "issuer-a"}
