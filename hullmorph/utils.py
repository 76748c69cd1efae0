"""Various utils"""
import hashlib
import json


def load_json(fn):
    """
    Load a json file and return the content as a dictionary.
    """
    with open(fn, "r") as f:
        data = json.load(f)
    return data


def save_json(fn, data, indent=None):
    """
    Save a dictionary to a json file.
    """
    with open(fn, "w") as f:
        json.dump(data, f, indent=indent)


def file_sha256(fn, chunk_size=1 << 20):
    """
    Hex SHA-256 digest of a file, read in chunks.
    """
    digest = hashlib.sha256()
    with open(fn, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()
