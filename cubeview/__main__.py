from cubeview.main import main

main()
