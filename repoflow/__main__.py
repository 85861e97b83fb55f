from repoflow.cli import main

main()
