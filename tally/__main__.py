from tally.bootstrap.main import entrypoint

if __name__ == '__main__':
    entrypoint()
