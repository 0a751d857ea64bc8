import os, pathlib, hashlib, tempfile, urllib.request
from typing import Any

def getenv(key: str, default: Any = 0) -> Any:
  """read an environment variable, typed after its default"""
  val = os.getenv(key)
  if val is None or val == "": return default
  return type(default)(val)

DEBUG = getenv("DEBUG", 0)

def debug(msg: str, level: int = 1) -> None:
  if DEBUG >= level: print(msg)

def ceildiv(num: int, amt: int) -> int: return -(-num // amt)

def fetch(url: str) -> pathlib.Path:
  """
  resolves a module location to a local file
  http(s) urls are downloaded once into KERNBENCH_CACHE, everything else is treated as a path
  """
  if not url.startswith(("http://", "https://")): return pathlib.Path(url).expanduser()
  cache = pathlib.Path(getenv("KERNBENCH_CACHE", "~/.cache/kernbench")).expanduser()
  fp = cache / "downloads" / hashlib.md5(url.encode('utf-8')).hexdigest()
  if not fp.is_file():
    with urllib.request.urlopen(url, timeout=10) as r:
      if r.status != 200: raise OSError(f"fetch {url} failed with status {r.status}")
      total_length = int(r.headers.get('content-length', 0))
      (path := fp.parent).mkdir(parents=True, exist_ok=True)
      with tempfile.NamedTemporaryFile(dir=path, delete=False) as f:
        try:
          while chunk := r.read(16384): f.write(chunk)
          f.close()
          if (file_size:=os.stat(f.name).st_size) < total_length: raise OSError(f"fetch size incomplete, {file_size} < {total_length}")
          pathlib.Path(f.name).rename(fp)
        except BaseException:
          pathlib.Path(f.name).unlink(missing_ok=True)
          raise
    debug(f"fetched {url} -> {fp}")
  return fp
