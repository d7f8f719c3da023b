import pytest

from imageclone.core.exceptions import ParseError
from imageclone.image import (
    Digest,
    ImageReference,
    Registry,
    destination,
    is_mirrored,
    parse,
    parse_registry,
    sanitize_registry,
    serialize,
)

BACKUP = Registry(authority="10.96.0.11:5001")
DIGEST = "sha256:33cef0ff2ee79e3ff0f2ae3f4bc2f2a6b1a4cb1c6f0b7bf0b3f2a0b7e6a9d1c4"


@pytest.mark.parametrize(
    "image, registry, repository, identifier",
    [
        ("nginx", "index.docker.io", "library/nginx", "latest"),
        ("nginx:1.23", "index.docker.io", "library/nginx", "1.23"),
        ("docker.io/nginx", "index.docker.io", "library/nginx", "latest"),
        ("grafana/grafana:main", "index.docker.io", "grafana/grafana", "main"),
        (
            "ghcr.io/timebertt/speedtest-exporter:v0.1.0",
            "ghcr.io",
            "timebertt/speedtest-exporter",
            "v0.1.0",
        ),
        ("localhost/app", "localhost", "app", "latest"),
        ("localhost:5000/team/app:dev", "localhost:5000", "team/app", "dev"),
        ("GHCR.IO/org/app", "ghcr.io", "org/app", "latest"),
        (f"nginx@{DIGEST}", "index.docker.io", "library/nginx", DIGEST),
        (f"nginx:1.23@{DIGEST}", "index.docker.io", "library/nginx", DIGEST),
    ],
)
def test_parse(image: str, registry: str, repository: str, identifier: str):
    ref = parse(image)

    assert ref.registry == Registry(authority=registry)
    assert ref.repository == repository
    assert str(ref.identifier) == identifier


@pytest.mark.parametrize(
    "image",
    [
        "",
        " nginx",
        "nginx:",
        "nginx:-bad",
        "Nginx",
        "nginx@sha256:1234",
        "nginx@md5:" + "a" * 32,
        "ghcr.io/",
        "gh_cr.io:port/app",
        "a/b//c",
        "grafana/grafana\n:main",
        "ghcr.io\n/org/app",
        "nginx\n",
        "nginx:t\u00e9st",
        "nginx:latest\n",
        "nginx@sha512:" + "a" * 128,
        "nginx@sha384:" + "a" * 96,
    ],
)
def test_parse_error(image: str):
    with pytest.raises(ParseError):
        parse(image)


@pytest.mark.parametrize(
    "image",
    [
        "nginx",
        "grafana/grafana:main",
        "localhost:5000/team/app:dev",
        f"ghcr.io/org/app@{DIGEST}",
        "10.96.0.11:5001/index_docker_io/library/nginx:latest",
    ],
)
def test_serialize_round_trip(image: str):
    ref = parse(image)

    assert parse(serialize(ref)) == ref


def test_parse_registry():
    assert parse_registry("docker.io") == Registry(authority="index.docker.io")
    assert parse_registry("Registry.Local:5000").authority == (
        "registry.local:5000"
    )
    with pytest.raises(ParseError):
        parse_registry("registry.local/path")


def test_reference_requires_one_identifier():
    with pytest.raises(ValueError):
        ImageReference(registry=BACKUP, repository="app")
    with pytest.raises(ValueError):
        ImageReference(
            registry=BACKUP,
            repository="app",
            tag="v1",
            digest=Digest(algorithm="sha256", encoded="a" * 64),
        )


def test_sanitize_registry():
    assert sanitize_registry(Registry(authority="index.docker.io")) == (
        "index_docker_io"
    )
    assert sanitize_registry(BACKUP) == "10_96_0_11_5001"


@pytest.mark.parametrize(
    "image, expected",
    [
        ("nginx", "10.96.0.11:5001/index_docker_io/library/nginx:latest"),
        ("nginx:1.23", "10.96.0.11:5001/index_docker_io/library/nginx:1.23"),
        (
            f"nginx@{DIGEST}",
            "10.96.0.11:5001/index_docker_io/library/nginx:"
            + DIGEST.replace(":", "_"),
        ),
        (
            "grafana/grafana:main",
            "10.96.0.11:5001/index_docker_io/grafana/grafana:main",
        ),
        (
            "ghcr.io/timebertt/speedtest-exporter:v0.1.0",
            "10.96.0.11:5001/ghcr_io/timebertt/speedtest-exporter:v0.1.0",
        ),
        (
            "localhost:5000/app",
            "10.96.0.11:5001/localhost_5000/app:latest",
        ),
    ],
)
def test_destination(image: str, expected: str):
    assert destination(parse(image), BACKUP).name == expected


def test_destination_of_digest():
    dst = destination(parse(f"nginx@{DIGEST}"), BACKUP)

    assert dst.registry == BACKUP
    assert dst.repository == "index_docker_io/library/nginx"
    assert dst.tag == DIGEST.replace(":", "_")
    assert dst.digest is None


def test_destination_is_deterministic():
    source = parse("ghcr.io/org/app:v1")

    assert destination(source, BACKUP) == destination(source, BACKUP)
    assert destination(source, BACKUP).name == destination(source, BACKUP).name


def test_is_mirrored():
    assert is_mirrored(parse("10.96.0.11:5001/index_docker_io/x:y"), BACKUP)
    assert not is_mirrored(parse("nginx"), BACKUP)
    assert not is_mirrored(parse("10.96.0.11:5002/x"), BACKUP)


def test_destination_of_digest_round_trips():
    dst = destination(parse(f"nginx@{DIGEST}"), BACKUP)

    assert len(dst.tag) <= 128
    assert parse(serialize(dst)) == dst
