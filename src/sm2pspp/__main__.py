from sm2pspp.cli import main

main()
