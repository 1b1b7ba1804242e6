#!/usr/bin/env python3
"""End-to-end check of the installed etcutils command against a scratch root"""
import os
import subprocess
import tempfile
import shutil


class InTempDir:
    def __init__(self, suffix="", prefix="tmp", delete=True):
        self.delete = delete
        self.temp_path = tempfile.mkdtemp(suffix=suffix, prefix=prefix)

    def __enter__(self):
        self.orig_path = os.getcwd()
        os.chdir(self.temp_path)
        return self

    def __exit__(self, *exc_info):
        # Restore the working dir and cleanup the temp one
        os.chdir(self.orig_path)
        if self.delete:
            shutil.rmtree(self.temp_path)


def test1():
    with InTempDir(prefix="etcutils-systest"):
        os.mkdir("etc")
        with open("etc/passwd", "w+t") as f:
            f.write("root:x:0:0:root:/root:/bin/bash\n")

        with open("new.passwd", "w+t") as f:
            f.write("root:x:0:0:root:/root:/bin/bash\n")
            f.write("alice:x:1000:1000:Alice:/home/alice:/bin/sh\n")

        etcutils = ["etcutils", "--root", "."]
        subprocess.check_call(etcutils + ["check", "passwd", "new.passwd"])
        subprocess.check_call(etcutils + ["apply", "passwd", "new.passwd"])

        out = subprocess.check_output(etcutils + ["next-id", "uid", "--start", "1000"])
        assert out.decode().strip() == "1001"

        with open("etc/passwd", "rt") as f:
            assert f.read().splitlines()[-1].startswith("alice:")
        assert os.path.exists("etc/passwd-")


def main():
    test1()
    print("All is good.")


if __name__ == "__main__":
    main()
