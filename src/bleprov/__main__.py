from bleprov.core.agent import main

main()
