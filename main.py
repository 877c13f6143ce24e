#!/usr/bin/env python3
from remote_net_test.main import run

if __name__ == "__main__":
    run()
